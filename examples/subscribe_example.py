import asyncio
import os

from reactivex import operators as ops

from centrilink import (
    HttpTokenSource,
    SessionConfig,
    SessionConnection,
    SessionState,
)

# Subscribes to two channels and prints a digest of every publication.
# Token and endpoint come from CENTRILINK_* variables, e.g.
#   CENTRILINK_URL=wss://example.app/connection/websocket
#   CENTRILINK_TOKEN_URL=https://example.app/current-state


def main():
    async def subscribe_forever():
        connection = SessionConnection(
            SessionConfig.from_env(channels=("news", "trades")),
            HttpTokenSource(os.environ["CENTRILINK_TOKEN_URL"]),
        )

        connection.connection_state.pipe(
            ops.filter(lambda state: state is SessionState.STEADY)
        ).subscribe(lambda _: print("steady:", connection.status()))

        connection.pipe(
            ops.map(lambda push: f"{push.channel}: {push.size} bytes"),
        ).subscribe(print, on_error=print)

        await connection.run()

    try:
        asyncio.run(subscribe_forever())

    except KeyboardInterrupt:
        print("\nKeyboard Interrupt.")


if __name__ == "__main__":
    main()
