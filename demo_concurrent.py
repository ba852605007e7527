import asyncio
import os

from sdk.pystore import StoreClient

async def simulate_checkout(client, buyer, product_id):
    try:
        r = await client.checkout_async([product_id])
        body = r.json()
        if r.status_code == 200:
            left = body["items"][0]["prod_quan"]
            print(f"✅ {buyer} got the last unit ({left} left)")
        elif r.status_code == 409:
            print(f"❌ {buyer} checkout failed: product already sold out.")
        elif r.status_code == 404:
            print(f"❌ {buyer} checkout failed: product not found.")
        else:
            print(f"⚠️  {buyer} unexpected response {r.status_code}: {body}")
    except Exception as e:
        print(f"❌ {buyer} unexpected failure: {e}")

async def main():
    c = StoreClient(base_url=os.environ.get("STORE_URL", "http://127.0.0.1:3000"))

    product_id = c.upload_product("Gaming Laptop", 1500.00, 1, "GL-1")["prod_id"]
    print(f"\n🖥️  Uploaded product {product_id} with a single unit in stock")

    print("\n⚡ Simulating concurrent checkouts...")
    await asyncio.gather(
        simulate_checkout(c, "alice", product_id),
        simulate_checkout(c, "bob", product_id),
    )

    print("\n📦 Final product state:", c.get_product(product_id))
    c.delete_product(product_id)

if __name__ == "__main__":
    asyncio.run(main())
