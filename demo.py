#!/usr/bin/env python
import os

from sdk.pystore import StoreClient

def main():
    c = StoreClient(base_url=os.environ.get("STORE_URL", "http://127.0.0.1:3000"))

    # -----------------------------
    # Create products
    # -----------------------------
    print("Uploading products...")
    widget = c.upload_product("Widget", 9.99, 2, "W1")
    gadget = c.upload_product("Gadget", 24.50, 5, "G1")
    print(widget)
    print(gadget)

    # -----------------------------
    # List products
    # -----------------------------
    print("\nListing products...")
    for p in c.list_products():
        print(p["prod_id"], p["prod_name"], p["prod_quan"])

    # -----------------------------
    # Update (image kept)
    # -----------------------------
    print("\nRenaming gadget...")
    print(c.update_product(gadget["prod_id"], "Gadget Pro", 29.00, 5, "G1")["updatedProduct"])

    # -----------------------------
    # Checkout until the widget runs out
    # -----------------------------
    for attempt in range(1, 4):
        r = c.checkout([widget["prod_id"]])
        print(f"\nCheckout #{attempt}: {r.status_code} {r.json()}")

    # -----------------------------
    # Multi-item checkout rolls back as a whole
    # -----------------------------
    print("\nCheckout gadget + widget (widget is sold out)...")
    r = c.checkout([gadget["prod_id"], widget["prod_id"]])
    print(r.status_code, r.json())
    print("Gadget stock untouched:", c.get_product(gadget["prod_id"])["prod_quan"])

    # -----------------------------
    # Cleanup
    # -----------------------------
    print("\nDeleting products...")
    print(c.delete_product(widget["prod_id"]))
    print(c.delete_product(gadget["prod_id"]))

if __name__ == "__main__":
    main()
