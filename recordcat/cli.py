# recordcat/cli.py

from __future__ import annotations

import argparse
import logging
import os
import re
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

from recordcat.config import DEFAULT_CONFIG_PATH, ConfigError, KafkaSettings, get_kafka_settings
from recordcat.format import CompileError, InputError, RenderError, SourceError, compile_template, parse_delimiter
from recordcat.format.delimited import DEFAULT_MAX_READ_BUF
from recordcat.kafka_helpers import (
    build_consumer,
    build_producer,
    check_connection,
    fetch_topic_partitions,
    match_topic_partitions,
)
from recordcat.services.consume import (
    ConsumeOutput,
    InvalidOffsetError,
    assign_partitions,
    iter_batches,
    parse_offset,
    subscribe_group,
)
from recordcat.services.produce import ProduceError, echo_template, run_produce

logger = logging.getLogger("recordcat")

CONSUME_HELP = r"""Consume topic records and print them.

Format options:
  %s    record value
  %S    length of a record value
  %v    alias for %s
  %V    alias for %S
  %R    length of a record value (8 byte big endian)
  %k    record key
  %K    length of a record key
  %T    record timestamp (nanoseconds since epoch)
  %t    record topic
  %p    record partition
  %o    record offset
  %e    record leader epoch
  %%    percent sign
  \n    newline
  \r    carriage return
  \t    tab
  \xXX  any byte (input must be hex)

%s, %v and %k accept {base64} to print unpadded base64, e.g. %v{base64}.

%T{strftime...} formats the timestamp. After "strftime" open the pattern
with any delimiter, repeated as often as needed, and close it with the same
run; {, [ and ( close with }, ] and ). Timestamps are formatted in UTC,
not local time.

  %T{strftime[[%F %T]]}

Putting it all together:
  -f 'Topic %t [%p] at offset %o @%T{strftime[%F %T]}: key %k: %s\n'
"""


def _parse_partitions(text: str) -> List[int]:
    try:
        return [int(p) for p in text.split(",") if p.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid partition list {text!r}")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="recordcat",
        description="Consume Kafka records through a format string, or produce records from stdin.",
    )
    p.add_argument(
        "--config-path",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="YAML config file, lowest priority (default: %(default)s)",
    )
    p.add_argument("-Z", "--no-config", action="store_true", help="Do not load any config file.")
    p.add_argument(
        "-X",
        "--config-opt",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Client config property, highest priority. Repeatable.",
    )
    p.add_argument(
        "--log-level",
        default=os.getenv("KAFKA_LOG_LEVEL", "INFO"),
        help="Logging level for stderr diagnostics (default: %(default)s)",
    )

    sub = p.add_subparsers(dest="command", required=True)

    c = sub.add_parser(
        "consume",
        help="Consume topic records",
        description=CONSUME_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    c.add_argument("topics", nargs="+", metavar="TOPIC")
    c.add_argument(
        "-p",
        "--partitions",
        type=_parse_partitions,
        default=None,
        help="Comma delimited list of specific partitions to consume.",
    )
    c.add_argument(
        "-o",
        "--offset",
        default="start",
        help="Offset to start consuming from: start, end, 47, start+2, end-3, or a range 47-100.",
    )
    c.add_argument(
        "-n",
        "--num",
        type=int,
        default=0,
        help="Quit after consuming this number of records; 0 is unbounded.",
    )
    c.add_argument("-f", "--format", default=r"%s\n", help="Output format (default: %(default)s)")
    c.add_argument(
        "-r",
        "--regex",
        action="store_true",
        help="Parse topics as regex; consume any topic that matches any expression.",
    )
    c.add_argument("-g", "--group", default=None, help="Consume as a member of this group.")
    c.add_argument("--batch-size", type=int, default=500, help="Records per fetch (default: %(default)s)")
    c.add_argument(
        "--poll-timeout",
        type=float,
        default=1.0,
        help="Seconds to wait per fetch (default: %(default)s)",
    )

    pr = sub.add_parser(
        "produce",
        help="Produce records to a topic from stdin",
        description=(
            "Produce records read from stdin. By default every newline delimited "
            "token is an unkeyed value. Delimiters understand \\n, \\r, \\t and \\xXX."
        ),
    )
    pr.add_argument("topic", metavar="TOPIC")
    pr.add_argument("-D", "--delim", default=r"\n", help="Record delimiter (default: %(default)s)")
    pr.add_argument(
        "-K",
        "--keyed-record-delim",
        default=None,
        help="Delimiter between alternating keys and values; overrides --delim.",
    )
    pr.add_argument(
        "--max-read-buf",
        type=int,
        default=DEFAULT_MAX_READ_BUF,
        help="Maximum bytes to buffer before a delimiter is required (default: %(default)s)",
    )
    pr.add_argument("-v", "--verbose", action="store_true", help="Print every successful delivery.")
    pr.add_argument("-f", "--format", default=None, help="Format for --verbose delivery lines.")

    sub.add_parser("check", help="Check the connection to the cluster")
    return p


def _settings(args: argparse.Namespace) -> KafkaSettings:
    return get_kafka_settings(
        config_path=None if args.no_config else args.config_path,
        overrides=args.config_opt,
    )


def _install_stop_handlers(stop_event: threading.Event) -> None:
    def _handle(sig, frame) -> None:  # type: ignore[override]
        logger.info("Received signal %s – stopping.", sig)
        stop_event.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def cmd_consume(args: argparse.Namespace) -> int:
    # Compile before touching the cluster: a bad format consumes nothing.
    template = compile_template(args.format)
    offsets = parse_offset(args.offset)
    if args.num < 0:
        raise SystemExit("[FAIL] --num must be >= 0.")
    if args.group and args.partitions:
        raise SystemExit(
            "[FAIL] incompatible flag assignment: group consuming cannot be used with direct partition consuming"
        )
    if args.regex:
        for pattern in args.topics:
            try:
                re.compile(pattern)
            except re.error as exc:
                raise SystemExit(f"[FAIL] unable to compile regexp {pattern!r}: {exc}")

    settings = _settings(args)
    consumer = build_consumer(settings, group_id=args.group, auto_offset_reset=offsets.auto_offset_reset)

    stop_event = threading.Event()
    _install_stop_handlers(stop_event)

    try:
        if args.group:
            names = subscribe_group(consumer, args.topics, regex=args.regex)
            logger.info("Consuming %s as group '%s'.", ", ".join(names), args.group)
        else:
            selected = match_topic_partitions(
                fetch_topic_partitions(consumer),
                args.topics,
                regex=args.regex,
                partitions=args.partitions,
            )
            if not selected:
                raise SystemExit("[FAIL] no matching topic partitions to consume")
            assign_partitions(consumer, selected, offsets)

        output = ConsumeOutput(template, sys.stdout.buffer, max_records=args.num, offsets=offsets)
        batches = iter_batches(
            consumer,
            batch_size=args.batch_size,
            timeout=args.poll_timeout,
            stop_event=stop_event,
        )
        num = output.consume(batches)
        logger.info("Stopped after %d records.", num)
    finally:
        logger.info("Closing consumer.")
        consumer.close()
    return 0


def cmd_produce(args: argparse.Namespace) -> int:
    keyed = args.keyed_record_delim is not None
    delim = parse_delimiter(args.keyed_record_delim if keyed else args.delim)
    echo = echo_template(args.format) if args.verbose else None
    if args.max_read_buf <= 0:
        raise SystemExit("[FAIL] --max-read-buf must be a positive integer.")

    producer = build_producer(_settings(args))
    run_produce(
        producer,
        args.topic,
        sys.stdin.buffer,
        sys.stdout.buffer,
        delim=delim,
        keyed=keyed,
        max_buf=args.max_read_buf,
        echo=echo,
    )
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    return 0 if check_connection(_settings(args)) else 1


_COMMANDS = {
    "consume": cmd_consume,
    "produce": cmd_produce,
    "check": cmd_check,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    try:
        return _COMMANDS[args.command](args)
    except (
        CompileError,
        InvalidOffsetError,
        ConfigError,
        InputError,
        SourceError,
        RenderError,
        ProduceError,
    ) as exc:
        print(f"[FAIL] {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
