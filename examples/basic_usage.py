"""Basic usage example for pyparticle library."""

import asyncio

from pyparticle import NoDevicesFoundError, ParticleClient


async def main() -> None:
    """Demonstrate basic usage of pyparticle."""
    async with ParticleClient() as client:
        token = await client.api.login("particle", "your@email.com", "your_password")
        print(f"Logged in, token ends in ...{token[-4:]}")

        # Every device with its functions and variables, sorted by name
        try:
            devices = await client.get_all_attributes()
        except NoDevicesFoundError:
            print("No devices found")
            return

        print(f"Found {len(devices)} device(s)")

        for device in devices:
            print(f"\nDevice: {device.get('name')}")
            print(f"  ID: {device['id']}")
            print(f"  Online: {device.get('connected')}")

            if not device.get("connected"):
                continue

            print(f"  Functions: {', '.join(device.get('functions') or [])}")
            for name, kind in (device.get("variables") or {}).items():
                value = await client.api.get_variable(device["id"], name)
                print(f"  {name} ({kind}) = {value.get('result')}")

            if "led" in (device.get("functions") or []):
                print("Calling led('on')...")
                result = await client.api.call_function(device["id"], "led", "on")
                print(f"  returned {result.get('return_value')}")


if __name__ == "__main__":
    asyncio.run(main())
