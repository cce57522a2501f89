"""Command line entry point.

``centrilink run`` keeps one session alive and prints a digest of every
publication. With ``--inspect`` an interactive console accepts

    status      current SessionStatus
    recent [N]  the last N EventLog entries (default 20)
    stop        stop the session and exit

``--events-file`` keeps every EventLog entry in a JSON-lines file, and
``--metrics-interval`` prints session metrics periodically.

Settings not given on the command line come from ``CENTRILINK_*`` variables,
read after loading a ``.env`` file from the working directory.
"""

import argparse
import asyncio
import os

from dotenv import load_dotenv
from opentelemetry.sdk.metrics import MeterProvider
from prompt_toolkit import PromptSession
from prompt_toolkit.patch_stdout import patch_stdout

from .session import (
    HeartbeatAckShape,
    HttpTokenSource,
    Push,
    ReconnectPolicy,
    SessionConfig,
    SessionConnection,
    StaticTokenSource,
    TokenSource,
)
from .sinks import JsonLinesEventSink
from .telemetry import ConsoleLogRecordExporter, configure_metrics, configure_telemetry
from .utils import get_short_error_info


def build_parser(subparsers: argparse._SubParsersAction):
    parser = subparsers.add_parser("run", help="run a session until interrupted.")
    parser.add_argument("--url", type=str, help="wss:// endpoint (CENTRILINK_URL)")
    parser.add_argument(
        "--channel",
        dest="channels",
        action="append",
        help="channel to subscribe; repeat for several (CENTRILINK_CHANNELS)",
    )
    token = parser.add_mutually_exclusive_group()
    token.add_argument("--token-url", type=str, help="JSON endpoint serving the token")
    token.add_argument("--token", type=str, help="static token")
    parser.add_argument(
        "--token-path",
        type=str,
        default="data.main.centrifugeToken",
        help="dotted path of the token in the --token-url document",
    )
    parser.add_argument("--user-agent", type=str)
    parser.add_argument("--origin", type=str)
    parser.add_argument(
        "--heartbeat-ack",
        type=str,
        choices=[shape.value for shape in HeartbeatAckShape],
    )
    parser.add_argument("--max-retries", type=int, default=None)
    parser.add_argument("--log-format", type=str, choices=["text", "json"], default="text")
    parser.add_argument(
        "--events-file",
        type=str,
        default=None,
        help="append every EventLog entry to this JSON-lines file",
    )
    parser.add_argument(
        "--metrics-interval",
        type=float,
        default=None,
        help="print session metrics every N seconds",
    )
    parser.add_argument(
        "--inspect", action="store_true", help="open the interactive inspector"
    )
    parser.set_defaults(func=task)


def make_config(parsed_args: argparse.Namespace) -> SessionConfig:
    overrides: dict = {}
    if parsed_args.url:
        overrides["url"] = parsed_args.url
    if parsed_args.channels:
        overrides["channels"] = tuple(parsed_args.channels)
    if parsed_args.user_agent:
        overrides["user_agent"] = parsed_args.user_agent
    if parsed_args.origin:
        overrides["origin"] = parsed_args.origin
    if parsed_args.heartbeat_ack:
        overrides["heartbeat_ack"] = HeartbeatAckShape(parsed_args.heartbeat_ack)
    return SessionConfig.from_env(**overrides)


def make_token_source(parsed_args: argparse.Namespace, logger_provider=None) -> TokenSource:
    token_url = parsed_args.token_url or os.environ.get("CENTRILINK_TOKEN_URL")
    if parsed_args.token is None and token_url:
        return HttpTokenSource(
            token_url,
            path=tuple(parsed_args.token_path.split(".")),
            logger_provider=logger_provider,
        )
    return StaticTokenSource(parsed_args.token or os.environ.get("CENTRILINK_TOKEN"))


def make_meter_provider(parsed_args: argparse.Namespace) -> MeterProvider | None:
    if not parsed_args.metrics_interval:
        return None
    return configure_metrics(export_interval_ms=int(parsed_args.metrics_interval * 1000))


def attach_events_file(
    parsed_args: argparse.Namespace, connection: SessionConnection
) -> JsonLinesEventSink | None:
    if not parsed_args.events_file:
        return None
    sink = JsonLinesEventSink(parsed_args.events_file)
    connection.event_log.subscribe(sink)
    return sink


def handle_command(connection: SessionConnection, line: str) -> str | None:
    """Execute one inspector command. Returns the text to print, None to quit."""
    words = line.split()
    if not words:
        return ""
    command, args = words[0].lower(), words[1:]

    if command == "status":
        status = connection.status()
        last = status.last_disconnect
        return "\n".join(
            [
                f"state:          {status.state.value}",
                f"connected:      {status.connected}",
                f"client_id:      {status.client_id}",
                f"uptime_ms:      {status.session_uptime_ms}",
                f"last_hb_ack_at: {status.last_heartbeat_ack_at}",
                f"attempt_count:  {status.attempt_count}",
                f"last_close:     {f'{last.reason} ({last.detail})' if last else None}",
            ]
        )

    if command == "recent":
        try:
            limit = int(args[0]) if args else 20
        except ValueError:
            return f"not a number: {args[0]}"
        entries = connection.list_recent(limit)
        return "\n".join(str(entry) for entry in entries) or "(empty)"

    if command in ("stop", "quit", "exit"):
        connection.stop()
        return None

    return "commands: status | recent [N] | stop"


async def inspect(connection: SessionConnection) -> None:
    session: PromptSession = PromptSession()
    while True:
        try:
            with patch_stdout():
                line = await session.prompt_async("centrilink> ")
        except (EOFError, KeyboardInterrupt):
            connection.stop()
            return
        output = handle_command(connection, line)
        if output is None:
            return
        if output:
            print(output)


def task(parsed_args: argparse.Namespace):

    async def run_session():
        tracer_provider, logger_provider = configure_telemetry(
            log_exporter=ConsoleLogRecordExporter(format=parsed_args.log_format),
            batch_logs=False,
        )
        meter_provider = make_meter_provider(parsed_args)
        connection = SessionConnection(
            make_config(parsed_args),
            make_token_source(parsed_args, logger_provider),
            retry_policy=ReconnectPolicy(max_retries=parsed_args.max_retries),
            tracer_provider=tracer_provider,
            logger_provider=logger_provider,
            meter_provider=meter_provider,
        )
        sink = attach_events_file(parsed_args, connection)
        try:
            await drive(connection)
        finally:
            if sink is not None:
                sink.close()
            if meter_provider is not None:
                meter_provider.shutdown()

    async def drive(connection: SessionConnection):

        def on_push(push: Push):
            print(f"[{push.channel}] {push.size} bytes")

        connection.subscribe(
            on_next=on_push,
            on_error=lambda e: print(f"Session failed: {get_short_error_info(e)}"),
        )

        runner = asyncio.create_task(connection.run())
        if not parsed_args.inspect:
            await runner
            return

        inspector = asyncio.create_task(inspect(connection))
        done, _ = await asyncio.wait(
            {runner, inspector}, return_when=asyncio.FIRST_COMPLETED
        )
        if inspector in done:
            await runner
        else:
            inspector.cancel()
            await asyncio.gather(inspector, return_exceptions=True)

    try:
        asyncio.run(run_session())

    except KeyboardInterrupt:
        print("\nKeyboard Interrupt.")


def main(argv: list[str] | None = None):
    load_dotenv()
    parser = argparse.ArgumentParser(
        prog="centrilink", description="Persistent authenticated subscription client."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    build_parser(subparsers)
    parsed_args = parser.parse_args(argv)
    parsed_args.func(parsed_args)


if __name__ == "__main__":
    main()
