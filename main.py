#main.py

"""
notifyrouter - watch files and directories and print filtered events
"""
import argparse
import os
import sys
from typing import List, Optional

from notifyrouter.utils.config import Config, WatchSpec, load_config
from notifyrouter.utils.logger import setup_logging, get_logger, log_exception
from notifyrouter.watch import FileSystemWatcher, Op, WatchError, WatcherClosed

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="notifyrouter",
        description="Watch files and directories and print filtered change events",
    )
    parser.add_argument("paths", nargs="*", help="Files or directories to watch")
    parser.add_argument("-c", "--config", help="Configuration file (YAML or JSON)")
    parser.add_argument("-p", "--pattern", default="",
                        help="Glob matched against file names in watched directories")
    parser.add_argument("-o", "--ops", default="all",
                        help="Operations to report, e.g. 'create|write' (default: all)")
    parser.add_argument("-r", "--recursive", action="store_true",
                        help="Also watch subdirectories")
    parser.add_argument("--polling", action="store_true",
                        help="Use polling instead of OS notifications")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, ...)")
    parser.add_argument("--log-format", choices=["text", "json", "color"],
                        help="Log output format")
    return parser


def resolve_config(args: argparse.Namespace) -> Config:
    """Merge command line arguments into the loaded configuration"""
    config = load_config(args.config) if args.config else Config()

    if args.polling:
        config.watcher.use_polling = True
    if args.log_level:
        config.logging.level = args.log_level
    if args.log_format:
        config.logging.format = args.log_format

    for path in args.paths:
        config.watches.append(WatchSpec(
            path=path,
            kind="dir" if os.path.isdir(path) else "file",
            pattern=args.pattern,
            ops=args.ops,
            recursive=args.recursive,
        ))
    return config


def add_watches(watcher: FileSystemWatcher, watches: List[WatchSpec]) -> int:
    """
    Add configured watches to a watcher

    Returns:
        Number of watches that were added
    """
    added = 0
    for watch in watches:
        try:
            ops = Op.parse(watch.ops)
            if watch.kind == "dir":
                watcher.add_dir(watch.path, watch.pattern, ops, watch.recursive)
            else:
                watcher.add_file(watch.path, ops)
            added += 1
        except (WatchError, ValueError) as e:
            logger.error(f"Cannot watch {watch.path}: {e}")
    return added


def run(watcher: FileSystemWatcher, out=None):
    """Print events until the watcher is closed"""
    out = out or sys.stdout
    while True:
        try:
            event = watcher.wait_event()
        except WatcherClosed:
            return
        except WatchError as e:
            log_exception(logger, e, "Event source error")
            continue
        print(event, file=out, flush=True)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)

    try:
        config = resolve_config(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(
        log_level=config.logging.level,
        log_file=config.logging.file,
        log_format=config.logging.format,
        max_file_size=config.logging.max_file_size,
        backup_count=config.logging.backup_count,
    )

    if not config.watches:
        logger.error("Nothing to watch: give paths or a config file with watches")
        return 1

    watcher = FileSystemWatcher(config=config.watcher)
    try:
        if add_watches(watcher, config.watches) == 0:
            logger.error("No watch could be added")
            return 1

        logger.info(f"Watching {len(watcher.get_watches())} paths. Press Ctrl+C to stop.")
        run(watcher)

    except KeyboardInterrupt:
        logger.info("Shutting down...")

    finally:
        watcher.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
