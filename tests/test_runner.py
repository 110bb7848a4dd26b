"""Tests for the multi-workspace sync loop."""

import asyncio

from rich.console import Console

from linkpress.runner import run_sync, sync_sources
from linkpress.slack.client import SlackClient

from conftest import FakeClassifier, FakeHistory, MemoryStore, make_config, make_messages


class HistoryFactory:
    """Hands out one FakeHistory per workspace and remembers them."""

    def __init__(self, channels=None, failing=()):
        self.channels = channels or {}
        self.failing = set(failing)
        self.created: list[tuple[str, FakeHistory]] = []

    def __call__(self, source, slack_cfg):
        history = FakeHistory(self.channels, failing=self.failing)
        self.created.append((source.id, history))
        return history

    @property
    def fetched(self) -> list[str]:
        return [channel_id for _, history in self.created for channel_id, _ in history.calls]


def _sync(cfg, store, classifier, factory, **kwargs):
    return asyncio.run(sync_sources(cfg, store, classifier, history_factory=factory, **kwargs))


def test_no_sources_touches_nothing():
    store = MemoryStore()
    classifier = FakeClassifier()
    factory = HistoryFactory()

    result = _sync(make_config(), store, classifier, factory)

    assert result.counters() == (0, 0, 0, 0)
    assert result.channels == []
    assert factory.created == []
    assert classifier.calls == []
    assert store.lookups == []


def test_run_sync_without_sources_prints_notice(tmp_path):
    cfg = make_config()
    cfg.store.path = str(tmp_path / "articles.db")
    console = Console(record=True, width=120)

    result = run_sync(cfg, console=console, show_progress=False)

    assert result.counters() == (0, 0, 0, 0)
    assert "No Slack sources configured" in console.export_text()
    assert not (tmp_path / "articles.db").exists()


def test_channels_processed_in_configured_order():
    cfg = make_config({"acme": ["C2", "C1", "C3"]})
    factory = HistoryFactory()

    _sync(cfg, MemoryStore(), FakeClassifier(), factory)

    assert factory.fetched == ["C2", "C1", "C3"]


def test_failing_channel_does_not_stop_the_run():
    cfg = make_config({"acme": ["C1", "C2"], "globex": ["C3"]})
    factory = HistoryFactory(
        channels={
            "C2": make_messages("https://a.com/two"),
            "C3": make_messages("https://a.com/three https://a.com/four"),
        },
        failing={"C1"},
    )
    store = MemoryStore()

    result = _sync(cfg, store, FakeClassifier(), factory)

    assert factory.fetched == ["C1", "C2", "C3"]
    assert [report.channel_id for report in result.failed_channels] == ["C1"]
    assert result.counters() == (3, 3, 0, 0)
    assert set(store.rows) == {"https://a.com/two", "https://a.com/three", "https://a.com/four"}


def test_totals_are_sums_of_channel_counters():
    cfg = make_config({"acme": ["C1", "C2"]})
    factory = HistoryFactory(
        channels={
            "C1": make_messages("https://a.com/1 https://a.com/old"),
            "C2": make_messages("https://a.com/2 https://a.com/skip"),
        }
    )
    store = MemoryStore(urls=["https://a.com/old"])
    classifier = FakeClassifier(reject={"https://a.com/skip"})

    result = _sync(cfg, store, classifier, factory)

    assert result.counters() == (4, 2, 1, 1)
    assert result.total_links_seen == sum(report.seen for report in result.channels)
    assert result.new_articles == sum(report.new for report in result.channels)
    assert result.already_known == sum(report.known for report in result.channels)
    assert result.filtered_out == sum(report.filtered for report in result.channels)


def test_second_run_finds_nothing_new():
    cfg = make_config({"acme": ["C1"]})
    factory = HistoryFactory(channels={"C1": make_messages("https://a.com/x", "https://b.com/y")})
    store = MemoryStore()

    first = _sync(cfg, store, FakeClassifier(), factory)
    second_classifier = FakeClassifier()
    second = _sync(cfg, store, second_classifier, factory)

    assert first.new_articles == 2
    assert second.new_articles == 0
    assert second.already_known == 2
    assert second_classifier.calls == []
    assert len(store.rows) == 2


def test_same_link_in_two_channels_saved_once():
    cfg = make_config({"acme": ["C1", "C2"]})
    factory = HistoryFactory(
        channels={"C1": make_messages("https://a.com/x"), "C2": make_messages("https://a.com/x")}
    )
    store = MemoryStore()

    result = _sync(cfg, store, FakeClassifier(), factory)

    assert [report.new for report in result.channels] == [1, 0]
    assert [report.known for report in result.channels] == [0, 1]
    assert store.rows["https://a.com/x"].source_channel_id == "C1"


def test_history_clients_are_closed():
    cfg = make_config({"acme": ["C1"], "globex": ["C2"]})
    factory = HistoryFactory(failing={"C2"})

    _sync(cfg, MemoryStore(), FakeClassifier(), factory)

    assert [source_id for source_id, _ in factory.created] == ["acme", "globex"]
    assert all(history.closed for _, history in factory.created)


def test_stop_event_ends_at_channel_boundary():
    cfg = make_config({"acme": ["C1", "C2"], "globex": ["C3"]})
    stop = asyncio.Event()

    class StoppingFactory(HistoryFactory):
        def __call__(self, source, slack_cfg):
            history = super().__call__(source, slack_cfg)
            original = history.fetch_history

            async def fetch_then_stop(channel_id, limit=200):
                stop.set()
                return await original(channel_id, limit)

            history.fetch_history = fetch_then_stop
            return history

    factory = StoppingFactory(channels={"C1": make_messages("https://a.com/x")})
    store = MemoryStore()

    result = _sync(cfg, store, FakeClassifier(), factory, stop_event=stop)

    assert factory.fetched == ["C1"]
    assert [report.channel_id for report in result.channels] == ["C1"]
    assert result.new_articles == 1


def test_channel_lines_and_rejections_rendered():
    cfg = make_config({"acme": ["C1", "C2"]})
    factory = HistoryFactory(
        channels={"C1": make_messages("https://a.com/keep https://a.com/skip")},
        failing={"C2"},
    )
    console = Console(record=True, width=200)

    _sync(cfg, MemoryStore(), FakeClassifier(reject={"https://a.com/skip"}), factory, console=console)

    output = console.export_text()
    assert "#c1: 2 links found, 1 new, 0 already saved, 1 filtered" in output
    assert "https://a.com/skip: not an article" in output
    assert "#c2: Failed to fetch" in output


def test_silent_hides_rejection_reasons():
    cfg = make_config({"acme": ["C1"]})
    cfg.sync.silent = True
    factory = HistoryFactory(channels={"C1": make_messages("https://a.com/skip")})
    console = Console(record=True, width=200)

    _sync(cfg, MemoryStore(), FakeClassifier(reject={"https://a.com/skip"}), factory, console=console)

    output = console.export_text()
    assert "1 filtered" in output
    assert "not an article" not in output


def test_batch_size_from_config_bounds_concurrency():
    cfg = make_config({"acme": ["C1"]})
    cfg.sync.batch_size = 3
    factory = HistoryFactory(channels={"C1": make_messages(*[f"https://a.com/{i}" for i in range(10)])})
    classifier = FakeClassifier()

    result = _sync(cfg, MemoryStore(), classifier, factory)

    assert result.new_articles == 10
    assert classifier.max_in_flight == 3


def test_unbuildable_workspace_client_fails_only_that_workspace():
    cfg = make_config({"acme": ["C1", "C2"], "globex": ["C3"]})
    cfg.sources.slack[0].token = "xoxc-é"
    inner = HistoryFactory(channels={"C3": make_messages("https://a.com/three")})

    def factory(source, slack_cfg):
        if source.id == "acme":
            # Non-ASCII token cannot become an HTTP header
            return SlackClient.from_source(source, slack_cfg)
        return inner(source, slack_cfg)

    store = MemoryStore()
    console = Console(record=True, width=200)

    result = _sync(cfg, store, FakeClassifier(), factory, console=console)

    assert inner.fetched == ["C3"]
    assert [report.channel_id for report in result.failed_channels] == ["C1", "C2"]
    assert all(report.failed_stage == "connect" for report in result.failed_channels)
    assert all(
        (report.seen, report.new, report.known, report.filtered) == (0, 0, 0, 0)
        for report in result.failed_channels
    )
    assert result.counters() == (1, 1, 0, 0)
    assert set(store.rows) == {"https://a.com/three"}
    assert "#c1: Failed to connect" in console.export_text()


def test_store_failure_is_reported_as_ingest_failure():
    class BrokenStore(MemoryStore):
        async def find_existing(self, urls):
            raise OSError("disk full")

    cfg = make_config({"acme": ["C1"]})
    factory = HistoryFactory(channels={"C1": make_messages("https://a.com/x")})
    console = Console(record=True, width=200)

    result = _sync(cfg, BrokenStore(), FakeClassifier(), factory, console=console)

    output = console.export_text()
    assert result.failed_channels[0].failed_stage == "ingest"
    assert "#c1: Failed to ingest" in output
    assert "Failed to fetch" not in output
    assert "disk full" in output
