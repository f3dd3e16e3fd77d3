"""Example showing session injection and token reuse."""

import asyncio

from aiohttp import ClientSession

from pyparticle import InvalidTokenError, ParticleClient


async def main() -> None:
    """Demonstrate reusing a stored token with an application-managed session."""
    async with ClientSession() as session:
        print("Using application-managed aiohttp session")

        # Client will use the provided session instead of creating its own
        client = ParticleClient(access_token="your_stored_token", session=session)

        async with client:
            try:
                devices = await client.api.list_devices()
            except InvalidTokenError:
                print("Stored token expired, log in again")
                return

            for device in devices:
                print(f"  - {device.get('name')} ({device['id']})")

        # Session remains open after client exits
        print("\nClient closed, but session still available for other requests")


if __name__ == "__main__":
    asyncio.run(main())
