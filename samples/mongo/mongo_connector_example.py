#!/usr/bin/env python3
"""
MongoDB Connector Example

Demonstrates driving MongoConnector the way an integration host framework does: listing its operations and invoking
them by name with keyword parameters.

Prerequisites:
- MongoDB running on localhost:27017 (or set CONDUIT_MONGO__HOST / CONDUIT_MONGO__PORT)
"""

from conduit.mongo import MongoConnector, document_to_json

MAP_FUNCTION = "function() { emit(this.category, this.price); }"
REDUCE_FUNCTION = "function(key, values) { return Array.sum(values); }"


def demonstrate_documents(connector: MongoConnector):
    print("\n" + "=" * 70)
    print("DOCUMENTS")
    print("=" * 70)

    connector.invoke("drop-collection", collection="products")
    for name, category, price in [("pen", "office", 2), ("desk", "furniture", 120), ("stapler", "office", 8)]:
        product_id = connector.invoke(
            "insert-object",
            collection="products",
            document={"name": name, "category": category, "price": price},
            write_concern="SAFE",
        )
        print(f"✓ Inserted {name} with _id {product_id}")

    print(f"✓ {connector.invoke('count-objects', collection='products')} products stored")

    office = connector.invoke("find-objects", collection="products", query={"category": "office"}, fields=["name"])
    print(f"✓ Office products: {[product['name'] for product in office]}")

    modified = connector.invoke(
        "update-objects", collection="products", query={"category": "office"}, document={"$inc": {"price": 1}}
    )
    print(f"✓ Raised the price of {modified} products")

    desk = connector.invoke("find-one-object", collection="products", query={"name": "desk"})
    print(f"✓ Desk as JSON: {document_to_json(desk)}")

    totals = connector.invoke(
        "map-reduce-objects",
        collection="products",
        map_function=MAP_FUNCTION,
        reduce_function=REDUCE_FUNCTION,
    )
    for total in totals:
        print(f"✓ {total['_id']}: {total['value']}")


def demonstrate_indices(connector: MongoConnector):
    print("\n" + "=" * 70)
    print("INDICES")
    print("=" * 70)

    name = connector.invoke("create-index", collection="products", field="price", order="DESC")
    print(f"✓ Created index {name}")
    print(f"✓ Indices: {[index['name'] for index in connector.invoke('list-indices', collection='products')]}")
    connector.invoke("drop-index", collection="products", index=name)


def main():
    print(f"Operations: {', '.join(MongoConnector.operations())}")

    with MongoConnector(database="conduit_samples") as connector:
        print(f"Connecting to {connector.connection_id()}")
        demonstrate_documents(connector)
        demonstrate_indices(connector)
        connector.invoke("drop-collection", collection="products")


if __name__ == "__main__":
    main()
