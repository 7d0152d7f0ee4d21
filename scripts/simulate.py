"""
Rush Hour Simulation Script

Registers a crowd of customers and fires their orders at the API
concurrently, to exercise checkout, the per-customer rate limiter and the
Excel ledger workers under load.
Run from project root: python scripts/simulate.py

Requires a running API, worker and a seeded menu (python scripts/seed.py).
"""

import argparse
import asyncio
import random
import sys
import time
from datetime import datetime
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 50

FIRST_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa", "Chris", "Amy"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis", "Wilson", "Taylor"]
STREETS = ["Main St", "Broadway", "5th Avenue", "Park Ave", "Madison Ave", "Lexington Ave", "Amsterdam Ave"]
NOTES = [None, "Extra napkins", "No onions", "Ring doorbell", "Birthday table"]


async def register_customer(client: httpx.AsyncClient, run_id: str, num: int) -> str:
    """Create a throwaway customer and return its bearer token."""
    name = f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}"
    response = await client.post(
        f"{API_BASE_URL}/user/register",
        json={
            "name": name,
            "email": f"sim-{run_id}-{num}@orderdesk.dev",
            "password": "simulation",
            "phone": f"555-{random.randint(100, 999)}-{random.randint(1000, 9999)}",
        },
    )
    response.raise_for_status()
    return response.json()["data"]["token"]


def generate_order_payload(menu: list[dict[str, Any]], order_type: str) -> dict[str, Any]:
    picks = random.sample(menu, k=min(len(menu), random.randint(1, 4)))
    payload = {
        "items": [{"id": item["id"], "quantity": random.randint(1, 3)} for item in picks],
        "order_type": order_type,
        "order_notes": random.choice(NOTES),
    }
    if order_type == "dine-in":
        payload["table_number"] = str(random.randint(1, 30))
    else:
        payload["delivery_address"] = f"{random.randint(1, 999)} {random.choice(STREETS)}"
    return payload


async def send_order(
    client: httpx.AsyncClient,
    token: str,
    menu: list[dict[str, Any]],
    order_num: int,
    order_type: str,
) -> dict[str, Any]:
    start_time = time.time()
    try:
        response = await client.post(
            f"{API_BASE_URL}/user/orders",
            json=generate_order_payload(menu, order_type),
            headers={"Authorization": f"Bearer {token}"},
            timeout=30.0,
        )
        elapsed = round(time.time() - start_time, 3)
        body = response.json()

        if response.status_code == 201:
            return {
                "order_num": order_num,
                "success": True,
                "order_id": body["data"]["id"],
                "total": body["data"]["total_amount"],
                "time": elapsed,
                "mode": order_type,
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": f"{response.status_code} {body.get('error')}: {body.get('message')}"[:100],
            "time": elapsed,
            "mode": order_type,
        }
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
            "mode": order_type,
        }


async def run_simulation(mode: str = "both", num_orders: int = TOTAL_ORDERS, customers: int = 10) -> dict[str, Any]:
    """
    Fire ``num_orders`` orders spread over ``customers`` accounts.

    Args:
        mode: "dine-in", "delivery" or "both"
        num_orders: Number of orders to place
        customers: Number of customer accounts placing them
    """
    print("=" * 70)
    print("🔥 RUSH HOUR SIMULATION")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders} from {customers} customers")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"🔧 Mode: {mode}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    run_id = datetime.now().strftime("%Y%m%d%H%M%S")
    start_time = time.time()

    async with httpx.AsyncClient() as client:
        menu_response = await client.get(f"{API_BASE_URL}/menu-items")
        menu_response.raise_for_status()
        menu = menu_response.json()["data"]
        if not menu:
            print("\n❌ The menu is empty. Run: python scripts/seed.py")
            return {"total": num_orders, "successful": 0, "failed": num_orders, "results": []}

        tokens = await asyncio.gather(*[register_customer(client, run_id, i) for i in range(customers)])

        tasks = []
        for i in range(num_orders):
            order_type = mode if mode != "both" else ("dine-in" if i % 2 == 0 else "delivery")
            tasks.append(send_order(client, tokens[i % customers], menu, i + 1, order_type))
        results = await asyncio.gather(*tasks)

    total_time = round(time.time() - start_time, 2)
    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    throttled = [r for r in failed if r["error"].startswith("429")]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders} ({len(throttled)} rate limited)")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        times = [r["time"] for r in successful]
        print("\n📈 Performance Metrics:")
        print(f"   Average Response: {round(sum(times) / len(times), 3)}s")
        print(f"   Fastest: {min(times)}s")
        print(f"   Slowest: {max(times)}s")
        print(f"   💰 Total Revenue: ${sum(r['total'] for r in successful):.2f}")

    if failed:
        print("\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']} [{f['mode']}]: {f['error']}")

    print("\n" + "=" * 70)
    print("🔍 VERIFICATION STEPS")
    print("=" * 70)
    print("1. Check the Celery terminal - all export tasks should complete")
    print("2. Run: python scripts/verify.py")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results,
    }


async def check_health() -> bool:
    async with httpx.AsyncClient() as client:
        response = await client.get(f"{API_BASE_URL}/health")
    if response.status_code != 200:
        print(f"❌ Health check failed: {response.text}")
        return False
    data = response.json()
    print(f"✅ Status: {data.get('status')} (database: {data.get('database')}, redis: {data.get('redis')})")
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rush Hour Simulation Script")
    parser.add_argument("--mode", choices=["dine-in", "delivery", "both"], default="both")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--customers", type=int, default=10, help="Number of customer accounts")
    parser.add_argument("--skip-health", action="store_true", help="Skip the health check")
    args = parser.parse_args()

    if not args.skip_health and not asyncio.run(check_health()):
        sys.exit(1)

    asyncio.run(run_simulation(mode=args.mode, num_orders=args.orders, customers=max(1, args.customers)))
