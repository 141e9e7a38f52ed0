"""Command line access to the client, one call per invocation.

Every command prints the call's JSON payload (or one JSON document per line
for streaming commands) and exits non-zero when the call did not succeed.
"""

import argparse
import json
import logging
import os
import sys
from typing import Any, List, Optional

from . import __version__
from .client import DockerClient
from .connection import ConnectionDescriptor
from .errors import DockerException
from .images import progress_error
from .logframes import LogFrame
from .result import Result


def _setup_logging(level: str) -> logging.Logger:
    """Setup logging configuration."""
    logger = logging.getLogger('dockhand')
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '%(asctime)s - [%(name)s] - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S %Z'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def _parse_filters(values: Optional[List[str]]) -> dict:
    """Turn repeated ``--filter key=value`` options into a filter mapping."""
    filters = {}
    for item in values or []:
        key, sep, value = item.partition('=')
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Filter must be key=value, got '{item}'")
        filters.setdefault(key, []).append(value)
    return filters


def _print(document: Any) -> None:
    if isinstance(document, LogFrame):
        stream = sys.stderr if document.stream == 'stderr' else sys.stdout
        stream.write(document.text)
        stream.flush()
        return
    if isinstance(document, str):
        print(document)
    else:
        print(json.dumps(document, indent=2))


def _finish(result: Result, print_data: bool = True) -> int:
    if print_data and result.data is not None:
        if isinstance(result.data, list) and result.data and isinstance(result.data[0], LogFrame):
            for frame in result.data:
                _print(frame)
        else:
            _print(result.data)
    if not result.succeeded:
        result.log(logging.getLogger('dockhand'))
        return 1
    return 0


def _follow(stream) -> int:
    """Print documents until the stream ends or the user interrupts."""
    failure = None
    try:
        with stream:
            for document in stream:
                if isinstance(document, LogFrame):
                    _print(document)
                    continue
                print(json.dumps(document), flush=True)
                failure = failure or progress_error(document)
    except KeyboardInterrupt:
        return 0
    if failure:
        logging.getLogger('dockhand').error(failure)
        return 1
    return _finish(stream.result, print_data=False)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='dockhand',
        description='Docker Engine API client'
    )
    parser.add_argument(
        '--host', '-H',
        default=os.environ.get('DOCKER_HOST', ''),
        help='Daemon URL or unix socket path (env: DOCKER_HOST, default: /var/run/docker.sock)'
    )
    parser.add_argument(
        '--api-version',
        default=os.environ.get('DOCKER_API_VERSION'),
        help='Engine API version (env: DOCKER_API_VERSION, default: 1.39)'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default=os.environ.get('LOG_LEVEL', 'WARNING'),
        help='Logging level (env: LOG_LEVEL, default: WARNING)'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    sub = parser.add_subparsers(dest='command', required=True)
    sub.add_parser('ping', help='Check that the daemon answers')
    sub.add_parser('version', help='Daemon version information')
    sub.add_parser('info', help='Daemon system information')
    sub.add_parser('df', help='Disk usage')

    ps = sub.add_parser('ps', help='List containers')
    ps.add_argument('--all', '-a', action='store_true', help='Include stopped containers')
    ps.add_argument('--limit', type=int, help='Show only the N most recent containers')
    ps.add_argument('--filter', '-f', action='append', help='Filter as key=value (repeatable)')

    images = sub.add_parser('images', help='List images')
    images.add_argument('--all', '-a', action='store_true', help='Include intermediate images')
    images.add_argument('--filter', '-f', action='append', help='Filter as key=value (repeatable)')

    volumes = sub.add_parser('volumes', help='List volumes')
    volumes.add_argument('--filter', '-f', action='append', help='Filter as key=value (repeatable)')

    events = sub.add_parser('events', help='Print daemon events as they happen')
    events.add_argument('--since', help='Unix timestamp to start from')
    events.add_argument('--until', help='Unix timestamp to stop at (default: follow until interrupted)')
    events.add_argument('--filter', '-f', action='append', help='Filter as key=value (repeatable)')

    pull = sub.add_parser('pull', help='Pull an image, printing progress')
    pull.add_argument('image')
    pull.add_argument('--tag', default='latest')
    pull.add_argument('--platform')

    logs = sub.add_parser('logs', help='Print container logs')
    logs.add_argument('container')
    logs.add_argument('--follow', action='store_true')
    logs.add_argument('--tail', type=int)
    logs.add_argument('--timestamps', action='store_true')

    stats = sub.add_parser('stats', help='Print container resource usage')
    stats.add_argument('container')
    stats.add_argument('--stream', action='store_true', help='Keep printing samples until interrupted')

    for name in ('start', 'stop', 'restart', 'pause', 'unpause', 'inspect'):
        cmd = sub.add_parser(name, help=f'{name.capitalize()} a container')
        cmd.add_argument('container')

    return parser


def run(args: argparse.Namespace, client: DockerClient) -> int:
    command = args.command
    if command == 'ping':
        return _finish(client.system.ping())
    if command in ('version', 'info', 'df'):
        return _finish(getattr(client.system, command)())
    if command == 'ps':
        return _finish(client.containers.list(all=args.all, limit=args.limit,
                                              filters=_parse_filters(args.filter)))
    if command == 'images':
        return _finish(client.images.list(all=args.all, filters=_parse_filters(args.filter)))
    if command == 'volumes':
        return _finish(client.volumes.list(filters=_parse_filters(args.filter)))
    if command == 'events':
        return _follow(client.system.events_stream(since=args.since, until=args.until,
                                                   filters=_parse_filters(args.filter)))
    if command == 'pull':
        return _follow(client.images.pull_stream(args.image, tag=args.tag, platform=args.platform))
    if command == 'logs':
        if args.follow:
            return _follow(client.containers.logs_stream(args.container, tail=args.tail,
                                                         timestamps=args.timestamps))
        return _finish(client.containers.logs(args.container, tail=args.tail,
                                              timestamps=args.timestamps))
    if command == 'stats':
        if args.stream:
            return _follow(client.containers.stats_stream(args.container))
        return _finish(client.containers.stats(args.container))
    # single-container actions
    return _finish(getattr(client.containers, command)(args.container))


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logger = _setup_logging(args.log_level)

    try:
        if args.host:
            descriptor = ConnectionDescriptor.from_target(args.host, args.api_version)
        else:
            descriptor = ConnectionDescriptor.from_env()
            if args.api_version:
                descriptor = ConnectionDescriptor.from_target(
                    descriptor.base_url, args.api_version, descriptor.timeout)
        return run(args, DockerClient(descriptor))
    except (DockerException, argparse.ArgumentTypeError) as e:
        logger.error(f"Fatal error: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
