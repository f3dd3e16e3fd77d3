"""Example printing live events from the account's devices."""

import asyncio
import contextlib

from pyparticle import ParticleClient


def print_chunk(chunk: bytes) -> None:
    """Print raw server-sent event data as it arrives."""
    print(chunk.decode("utf-8", errors="replace"), end="")


async def main() -> None:
    """Listen to every event from the account's devices for one minute."""
    async with ParticleClient(access_token="your_stored_token") as client:
        stream = await client.api.get_event_stream(device_id="mine", sink=print_chunk)
        print(f"Listening on {stream.url}")

        try:
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(stream.wait(), timeout=60)
        finally:
            await stream.close()

        # Publishing goes through the same token
        await client.api.publish_event("example-done", "bye", private=True)


if __name__ == "__main__":
    asyncio.run(main())
