from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from namemapper.core.config import Settings, get_settings
from namemapper.core.configuration import Configuration
from namemapper.core.exceptions import NameMappingError
from namemapper.core.logging import configure_logging
from namemapper.core.metrics import render_metrics
from namemapper.schemas.resolution import ResolutionError, ResolutionRead
from namemapper.services.resolver_service import PrincipalResolver, set_global_configuration

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="namemapper",
        description="Resolve Kerberos principals to local user names.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  namemapper alice@EXAMPLE.COM
  namemapper -D 'security.auth_to_local=RULE:[2:$1@$0](hdfs@.*)s/.*/hdfs/ DEFAULT' hdfs/nn1@EXAMPLE.COM
  namemapper -c /etc/namemapper.properties --format json alice@EXAMPLE.COM
""",
    )
    parser.add_argument("principals", nargs="+", metavar="PRINCIPAL", help="principal names to resolve")
    parser.add_argument("-c", "--config", help="key=value configuration file (default: NAMEMAPPER_CONFIG_FILE)")
    parser.add_argument(
        "-D",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="configuration override, may be repeated",
    )
    parser.add_argument("--format", choices=("text", "json"), default="text", help="output format")
    parser.add_argument("--metrics", action="store_true", help="print prometheus metrics after resolving")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    return parser


def load_configuration(config_file: str | None, overrides: Sequence[str], settings: Settings) -> Configuration:
    path = config_file or settings.config_file
    base = Configuration.from_file(path) if path else None
    return Configuration.layered(base, Configuration.from_pairs(overrides))


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    level = logging.DEBUG if args.debug else settings.resolved_log_level
    configure_logging(level=level, log_format=settings.log_format)

    try:
        conf = load_configuration(args.config, args.overrides, settings)
        set_global_configuration(conf)
    except NameMappingError as exc:
        print(f"{settings.app_name}: {exc}", file=sys.stderr)
        return 2
    logger.debug("Loaded %s configuration keys", len(conf))

    for principal in args.principals:
        try:
            resolution = PrincipalResolver(principal).resolve()
        except NameMappingError as exc:
            if args.format == "json":
                error = ResolutionError(principal=principal, error=type(exc).__name__, detail=str(exc))
                print(error.model_dump_json(), file=sys.stderr)
            else:
                print(f"{principal}: {exc}", file=sys.stderr)
            return 1

        if args.format == "json":
            read = ResolutionRead(
                principal=resolution.principal,
                short_name=resolution.short_name,
                source=resolution.source,
            )
            print(read.model_dump_json())
        else:
            print(f"{principal} to {resolution.short_name}")

    if args.metrics:
        output, _ = render_metrics()
        sys.stdout.write(output.decode("utf-8"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
