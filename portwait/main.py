# Usage examples:
#   python3 -m portwait.main -t web:8000 -- nginx -g "daemon off;"
#   python3 -m portwait.main -t db:5432 -t redis:6379 --timeout 60 -- gunicorn app.wsgi
#   PROBE_TARGETS=web:8000 HANDOFF_COMMAND='nginx -g "daemon off;"' portwait

import argparse
import sys
from typing import List, Optional

from pydantic import ValidationError

from portwait.config.settings import Settings
from portwait.core.exceptions.exceptions import (
    AppError,
    DependencyUnavailableError,
    HandoffError,
    InvalidTargetError,
)
from portwait.jobs.gate import run_gate
from portwait.schemas.target import ProbeTarget
from portwait.services.handoff_service import HandoffService
from portwait.services.prober_service import ProberService
from portwait.utils.log import app_logger
from portwait.utils.parser import parse_command, parse_targets

EXIT_UNAVAILABLE = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def build_argparser():
    ap = argparse.ArgumentParser(
        prog="portwait",
        description="Wait for TCP dependencies to accept connections, then hand off to a server process",
        epilog="Everything after '--' is the command to run once all targets are ready.",
    )
    ap.add_argument("-t", "--target", dest="targets", action="append", default=[],
                    metavar="HOST:PORT", help="Dependency to wait for (repeatable, or comma-separated)")
    ap.add_argument("--host", help="Dependency host (use with --port)")
    ap.add_argument("--port", type=int, help="Dependency port (use with --host)")
    ap.add_argument("--interval", type=float, help="Seconds between attempts (default: PROBE_INTERVAL)")
    ap.add_argument("--connect-timeout", type=float, help="Per-attempt connect timeout in seconds")
    ap.add_argument("--timeout", type=float, help="Give up after this many seconds in total (default: wait forever)")
    ap.add_argument("--max-attempts", type=int, help="Give up after this many attempts per target")
    ap.add_argument("--http-path", help="Also require GET http://HOST:PORT/PATH to answer below 400")
    mode = ap.add_mutually_exclusive_group()
    mode.add_argument("--exec", dest="mode", action="store_const", const="exec",
                      help="Replace this process with the command (default on POSIX)")
    mode.add_argument("--supervise", dest="mode", action="store_const", const="supervise",
                      help="Run the command as a child, forward signals and exit with its code")
    ap.add_argument("-q", "--quiet", action="store_true", help="Do not print status lines to stdout")
    ap.add_argument("command", nargs=argparse.REMAINDER, help="Command to hand off to")
    return ap


def _positive(ap, name, value):
    if value is not None and value <= 0:
        ap.error(f"{name} must be greater than zero")
    return value


def resolve_targets(ap, args, settings: Settings) -> List[ProbeTarget]:
    if (args.host is None) != (args.port is None):
        ap.error("--host and --port must be used together")
    try:
        targets = parse_targets(args.targets)
        if args.host is not None:
            single = ProbeTarget.of(args.host, args.port)
            if single not in targets:
                targets.append(single)
        if not targets:
            targets = parse_targets(settings.PROBE_TARGETS)
    except InvalidTargetError as e:
        ap.error(e.message)
    if not targets:
        ap.error("no targets given (use -t HOST:PORT or PROBE_TARGETS)")
    return targets


def resolve_command(args, settings: Settings) -> List[str]:
    command = list(args.command or [])
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        command = parse_command(settings.HANDOFF_COMMAND)
    return command


def load_settings(ap) -> Settings:
    try:
        return Settings()
    except ValidationError as e:
        errors = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        ap.error(f"invalid configuration: {errors}")


def main(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> int:
    ap = build_argparser()
    args = ap.parse_args(argv)
    if settings is None:
        settings = load_settings(ap)
    app_logger.set_level(settings.LOG_LEVEL)

    targets = resolve_targets(ap, args, settings)
    command = resolve_command(args, settings)

    interval = _positive(ap, "--interval", args.interval if args.interval is not None else settings.PROBE_INTERVAL)
    connect_timeout = _positive(ap, "--connect-timeout",
                                args.connect_timeout if args.connect_timeout is not None else settings.PROBE_CONNECT_TIMEOUT)
    timeout = _positive(ap, "--timeout", args.timeout if args.timeout is not None else settings.PROBE_TIMEOUT)
    max_attempts = _positive(ap, "--max-attempts",
                             args.max_attempts if args.max_attempts is not None else settings.PROBE_MAX_ATTEMPTS)
    http_path = args.http_path or settings.PROBE_HTTP_PATH

    prober = ProberService(timeout=connect_timeout, http_path=http_path)
    try:
        return run_gate(
            targets,
            command,
            prober=prober,
            handoff=HandoffService(),
            interval=interval,
            timeout=timeout,
            max_attempts=max_attempts,
            mode=args.mode or settings.HANDOFF_MODE,
            announce=None if args.quiet else (lambda line: print(line, flush=True)),
        )
    except DependencyUnavailableError as e:
        app_logger.error("gate.dependency_unavailable", target=e.target, attempts=e.attempts,
                         elapsed_s=round(e.elapsed_s, 3), total_elapsed_s=e.total_elapsed_s, error=e.last_error)
        print(e.message, file=sys.stderr)
        return EXIT_UNAVAILABLE
    except HandoffError as e:
        app_logger.error("gate.handoff_failed", command=e.command, error=e.message, exit_code=e.exit_code)
        print(e.message, file=sys.stderr)
        return e.exit_code
    except AppError as e:
        app_logger.error("gate.error", error=str(e))
        return EXIT_UNAVAILABLE
    except KeyboardInterrupt:
        app_logger.warning("gate.interrupted")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
