#!/usr/bin/env python3
"""
GridFS Files Example

Stores, lists, reads and removes files through MongoConnector.

Prerequisites:
- MongoDB running on localhost:27017
"""

import io

from conduit.mongo import MongoConnector


def main():
    with MongoConnector(database="conduit_samples") as connector:
        connector.invoke(
            "create-file",
            content=b"name,qty\npen,3\n",
            filename="inventory.csv",
            content_type="text/csv",
            metadata={"source": "warehouse"},
        )
        connector.invoke("create-file", content=io.BytesIO(b"# Notes\n"), filename="notes.md")

        for file in connector.invoke("list-files"):
            print(f"✓ {file['filename']} ({file['length']} bytes)")

        content = connector.invoke("get-file-content", query={"filename": "inventory.csv"})
        print(content.read().decode())

        removed = connector.invoke("remove-files", query={"filename": {"$in": ["inventory.csv", "notes.md"]}})
        print(f"✓ Removed {removed} files")


if __name__ == "__main__":
    main()
