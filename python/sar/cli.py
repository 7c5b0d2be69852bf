"""
Command line entry point.

Indexes the configured roots, streams the lines into fzf and acts on the
selected line.

Exit status:
    0  an action was performed
    1  nothing was selected
    2  configuration, selector or internal error
"""

import argparse
import getpass
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from .actions import perform
from .config import DEFAULT_CONFIG_PATH, SarConfig
from .errors import ConfigError, IndexOutOfRange, SarError
from .models import Action, Item, PipelineStats, SelectionOutcome
from .pipeline import PipelineCoordinator
from .resolver import SelectionResolver
from .selector import FzfSelector
from .stream import StreamAdaptor


logger = logging.getLogger(__name__)


def build_config(args: argparse.Namespace) -> SarConfig:
    """Defaults, then config file, then environment, then flags."""
    config = SarConfig()

    config_path = Path(args.config).expanduser() if args.config else DEFAULT_CONFIG_PATH.expanduser()
    if config_path.exists():
        config = SarConfig.from_file(config_path, base=config)
    elif args.config:
        raise ConfigError(f"Config file not found: {config_path}")

    config = SarConfig.from_env(base=config)

    if args.roots:
        config.roots = [Path(r) for r in args.roots]
    if args.jobs is not None:
        config.worker_count = args.jobs

    config.__post_init__()
    return config


def select_item(
    coordinator: PipelineCoordinator,
    selector: FzfSelector,
) -> Tuple[SelectionOutcome, Optional[Item], PipelineStats]:
    """
    Run the pipeline into the selector and resolve the chosen line.

    The mirror sequence is only read after the selector has exited, the
    producers were cancelled and the stream was closed.
    """
    channel = coordinator.start()
    stream = StreamAdaptor(channel)
    try:
        outcome = selector.select(stream, on_exit=coordinator.cancel)
    finally:
        coordinator.cancel()
        stream.close()

    stats = coordinator.join()

    item = None
    if outcome.has_selection:
        item = SelectionResolver(stream.mirror).resolve(outcome.index)
    return outcome, item, stats


def report_failures(stats: PipelineStats) -> None:
    """Tell the user about files that could not be indexed."""
    if not stats.has_failures:
        return
    if stats.files_failed:
        print(f"sar: {stats.files_failed} files could not be read", file=sys.stderr)
    if stats.files_undecodable:
        print(f"sar: {stats.files_undecodable} encrypted files could not be decrypted",
              file=sys.stderr)
    for path in stats.failed_paths:
        logger.info(f"Not indexed: {path}")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sar",
        description="Fuzzy-find any line in your notes and act on it",
    )
    parser.add_argument("-o", "--open", action="store_true",
                        help="Open the selected line in $EDITOR (default: print the file)")
    parser.add_argument("-e", "--encrypted", action="store_true",
                        help="Also index Vim-encrypted files (asks for the password)")
    parser.add_argument("-r", "--root", dest="roots", action="append",
                        help="Directory to index (repeatable)")
    parser.add_argument("-j", "--jobs", type=int, help="Number of parallel workers")
    parser.add_argument("-c", "--config", help=f"Config file (default: {DEFAULT_CONFIG_PATH})")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = parse_args(argv)

    # Logs go to stderr, never into the stream shown to the selector
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    try:
        config = build_config(args)
    except ConfigError as e:
        print(f"sar: {e}", file=sys.stderr)
        return 2

    password = getpass.getpass("Password: ") if args.encrypted else None

    coordinator = PipelineCoordinator(config, password)
    selector = FzfSelector(enter_action=Action.OPEN if args.open else Action.PRINT)

    try:
        outcome, item, stats = select_item(coordinator, selector)
    except IndexOutOfRange as e:
        print(f"sar: internal error, selection does not match the stream: {e}",
              file=sys.stderr)
        return 2
    except SarError as e:
        print(f"sar: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        coordinator.close()
        return 1
    except Exception as e:
        logger.debug("Pipeline aborted", exc_info=True)
        print(f"sar: internal error: {e!r}", file=sys.stderr)
        return 2

    report_failures(stats)

    if outcome.action is Action.NONE:
        return 1

    try:
        perform(outcome.action, item, config)
    except (OSError, SarError) as e:
        print(f"sar: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
