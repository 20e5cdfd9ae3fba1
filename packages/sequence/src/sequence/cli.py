"""CLI entry point for the sequence runner."""

from __future__ import annotations

import asyncio
import logging
import os
import sys

import click

from sequence import __version__
from sequence.engine import SequenceConfig, Sequencer
from sequence.errors import EXIT_FAILURE, SequenceError, UsageError
from sequence.sinks import LineSink, StderrSink, SyslogPriority, SyslogSink, parse_priority

LOG_LEVELS = ("debug", "info", "warning", "error")


class SyslogPriorityType(click.ParamType):
    """Click type for ``facility.level`` syslog priorities."""

    name = "facility.level"

    def convert(self, value, param, ctx):
        if isinstance(value, SyslogPriority):
            return value
        try:
            return parse_priority(value)
        except UsageError as e:
            self.fail(str(e), param, ctx)


class SequenceCommand(click.Command):
    """Click command whose usage errors exit with status 1, not 2."""

    def parse_args(self, ctx, args):
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            e.exit_code = EXIT_FAILURE
            raise


def _usage_error(message: str, ctx: click.Context) -> click.UsageError:
    err = click.UsageError(message, ctx)
    err.exit_code = EXIT_FAILURE
    return err


def _report(prog: str, message: str) -> None:
    # Labels carry path bytes that may not be valid UTF-8; emit them as-is
    click.echo(os.fsencode(f"{prog}: {message}"), err=True)


def _configure_logging(prog: str, level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=f"{prog}: %(levelname)s: %(message)s",
        stream=sys.stderr,
    )


@click.command(
    name="sequence",
    cls=SequenceCommand,
    context_settings={"help_option_names": ["-h", "--help"]},
    epilog="Example: run every command in /etc/rc3.d, passing 'start' to each:\n\n"
           "  sequence /etc/rc3.d -- start",
)
@click.argument("directory")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.option("-0", "--zero", is_flag=True, help="Terminate printed names with a zero instead of newline.")
@click.option("-b", "--base-dir", default=None, help="Resolve DIRECTORY relative to this directory.")
@click.option("-i", "--ignore", is_flag=True, help="Ignore entries that are not executable.")
@click.option("-p", "--print", "print_only", is_flag=True, help="Print the name of executables rather than execute.")
@click.option("-s", "--syslog", "syslog_priority", type=SyslogPriorityType(), default=None,
              help="Send each executable's stderr to syslog at FACILITY.LEVEL, e.g. user.info.")
@click.option("-e", "--stderr-prefix", is_flag=True,
              help="Prefix each line of an executable's stderr with its path.")
@click.option("--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False), default="warning",
              envvar="SEQUENCE_LOG_LEVEL", show_default=True, help="Diagnostic logging level.")
@click.version_option(__version__, "-v", "--version", prog_name="sequence", message="%(prog)s %(version)s")
@click.pass_context
def main(
    ctx: click.Context,
    directory: str,
    args: tuple[str, ...],
    zero: bool,
    base_dir: str | None,
    ignore: bool,
    print_only: bool,
    syslog_priority: SyslogPriority | None,
    stderr_prefix: bool,
    log_level: str,
):
    """Run all executables in a directory in sequence.

    Executables in DIRECTORY run one at a time, ordered alphabetically by
    the bytes of their names. Hidden files and anything that is not a
    regular file are left alone. ARGS given after -- are passed to every
    executable, and each executable sees its own path as its name so it
    is clear which one is responsible for output in logfiles.

    Returns the exit status of the first executable to fail. If that
    executable was killed by a signal, the status is the signal number
    plus 128. If an executable could not be run, or the options are
    invalid, the status is 1.
    """
    prog = ctx.info_name or "sequence"
    _configure_logging(prog, log_level)

    if syslog_priority is not None and stderr_prefix:
        raise _usage_error("--syslog and --stderr-prefix cannot be combined", ctx)

    sink: LineSink | None = None
    if syslog_priority is not None:
        sink = SyslogSink(syslog_priority)
    elif stderr_prefix:
        sink = StderrSink()

    config = SequenceConfig(
        directory=directory,
        args=list(args),
        base_dir=base_dir,
        print_only=print_only,
        zero=zero,
        ignore=ignore,
        sink=sink,
    )

    try:
        result = asyncio.run(Sequencer(config).run())
    except SequenceError as e:
        _report(prog, str(e))
        sys.exit(e.exit_status)

    if not result.is_success:
        _report(prog, result.message)
    sys.exit(result.exit_status)


if __name__ == "__main__":
    main(prog_name="sequence")
