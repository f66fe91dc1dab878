import asyncio
import os
import sys
import time

import httpx

sys.path.append(os.getcwd())
from geoclock.core.security import create_access_token

# CLOCK STORM: concurrent clock-ins for one user against a running server.
# Exactly one request may open a record; every other one must get 409.
#
#   USER_ID=<existing user id> python tests/stress/clock_storm.py
# The target must have a geofence covering LATITUDE/LONGITUDE.

BASE_URL = os.environ.get("BASE_URL", "http://127.0.0.1:8000/api/v1")
USER_ID = os.environ.get("USER_ID", "")
LATITUDE = float(os.environ.get("LATITUDE", "48.8566"))
LONGITUDE = float(os.environ.get("LONGITUDE", "2.3522"))


async def clock(client, action):
    start = time.time()
    try:
        resp = await client.post(
            f"{BASE_URL}/attendance/{action}",
            json={"latitude": LATITUDE, "longitude": LONGITUDE},
            timeout=10.0,
        )
        return resp.status_code, time.time() - start
    except httpx.HTTPError as e:
        print(f"Request error on {action}: {e}")
        return "ERROR", 0


async def run_storm(concurrency=50, waves=5):
    headers = {"Authorization": f"Bearer {create_access_token(USER_ID)}"}
    limits = httpx.Limits(max_keepalive_connections=concurrency, max_connections=concurrency)
    async with httpx.AsyncClient(headers=headers, limits=limits) as client:
        for wave in range(waves):
            results = await asyncio.gather(*[clock(client, "clock-in") for _ in range(concurrency)])
            codes = {}
            for code, _ in results:
                codes[code] = codes.get(code, 0) + 1
            print(f"Wave {wave + 1}/{waves} clock-in: {codes}")

            if codes.get(201, 0) != 1:
                print("CRITICAL: open-record exclusivity violated or no clock-in accepted!")
            if codes.get(500, 0):
                print("CRITICAL: 500 errors during the storm!")

            code, _ = await clock(client, "clock-out")
            print(f"   clock-out: {code}")


if __name__ == "__main__":
    if not USER_ID:
        sys.exit("Set USER_ID to an existing user id")
    asyncio.run(run_storm())
