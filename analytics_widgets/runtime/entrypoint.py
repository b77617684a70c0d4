from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from analytics_widgets.core.domain.errors import TemplateSubstitutionError
from analytics_widgets.core.domain.types import TimeRange
from analytics_widgets.core.events.event_bus import EventBus
from analytics_widgets.core.events.sinks.file_recorder import FileRecorderSink
from analytics_widgets.core.events.sinks.sink_logging import LoggingEventSink
from analytics_widgets.core.merger.dual_query_merger import DualQueryMerger
from analytics_widgets.core.merger.merger_config import MergerConfig
from analytics_widgets.runtime.in_memory_channel import InMemoryQueryChannel
from analytics_widgets.runtime.prometheus_metrics import PrometheusEventSink

if TYPE_CHECKING:
    from analytics_widgets.core.domain.errors import ProviderDeliveryError
    from analytics_widgets.core.domain.results import MergedResult

LOGGER = logging.getLogger(__name__)

# Keys of the results file, in subscription order.
RESULT_KEYS: tuple[str, str] = ("query", "query2")

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    obj = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(obj, dict):
        raise ValueError(f"{path}: expected a JSON object")
    return obj


class _CollectingRenderTarget:
    """Render target that keeps the outcome of the replayed cycle."""

    def __init__(self) -> None:
        self.result: MergedResult | None = None
        self.error: ProviderDeliveryError | None = None

    def on_merged_result(self, result: MergedResult) -> None:
        self.result = result

    def on_error(self, error: ProviderDeliveryError) -> None:
        self.error = error


def _replay(
    channel: InMemoryQueryChannel,
    identities: tuple[str, ...],
    results: dict[str, Any],
    order: list[str],
) -> None:
    """
    Push the recorded provider responses into the channel.
    An entry with an "error" key is replayed as a provider failure.
    """
    by_key = dict(zip(RESULT_KEYS, identities))
    for key in order:
        entry = results.get(key)
        if not isinstance(entry, dict):
            raise ValueError(f"results file has no object entry for {key!r}")

        identity = by_key[key]
        if "error" in entry:
            channel.fail(identity, entry["error"])
        else:
            channel.deliver(identity, entry.get("metadata"), entry.get("rows", []))


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Replay one dual-query cycle against recorded provider results"
    )

    parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Path to the widget merger JSON config.",
    )

    parser.add_argument(
        "--from",
        dest="range_from",
        type=int,
        required=True,
        help="Selection start (epoch ms).",
    )

    parser.add_argument(
        "--to",
        dest="range_to",
        type=int,
        required=True,
        help="Selection end (epoch ms).",
    )

    parser.add_argument(
        "--results",
        type=Path,
        required=True,
        help='JSON file with "query" and "query2" entries ({"metadata", "rows"} or {"error"}).',
    )

    parser.add_argument(
        "--order",
        choices=["query-first", "query2-first"],
        default="query-first",
        help="Order in which the two results are delivered.",
    )

    parser.add_argument(
        "--record",
        type=Path,
        default=None,
        help="Append merger events as JSON lines to this file.",
    )

    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (DEBUG, INFO, WARNING, ...).",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        config = MergerConfig.from_json_obj(_load_json(args.config))
        results = _load_json(args.results)
    except (FileNotFoundError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    metrics = PrometheusEventSink()
    bus = EventBus([LoggingEventSink(logging.getLogger("bus")), metrics])
    if args.record is not None:
        bus.register(FileRecorderSink(args.record))

    channel = InMemoryQueryChannel()
    target = _CollectingRenderTarget()
    merger = DualQueryMerger(config, channel, target, event_bus=bus)

    order = list(RESULT_KEYS) if args.order == "query-first" else list(reversed(RESULT_KEYS))

    try:
        merger.on_selection_changed(TimeRange(from_=args.range_from, to=args.range_to))
        _replay(channel, merger.active_identities, results, order)
    except (TemplateSubstitutionError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    finally:
        merger.teardown()
        bus.close()

    if metrics.is_push_enabled():
        try:
            metrics.push_all(job="analytics_widgets_replay")
        except Exception:
            LOGGER.exception("Prometheus push failed")

    if target.error is not None:
        print(f"error: {target.error}", file=sys.stderr)
        return 1

    if target.result is None:
        print("error: cycle did not complete", file=sys.stderr)
        return 1

    print(json.dumps(target.result.to_json_obj(), indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
