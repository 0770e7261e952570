#!/usr/bin/env python3
"""
Basic example of one tree spanning folders, files and comments.

This example demonstrates:
- Registering three independently stored types in one tree
- Linking new entities to typed and polymorphic parents
- The four query shapes (roots, children, parents, siblings)
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path for development
sys.path.insert(0, str(Path(__file__).parent.parent))

from polytreelib import EntityRef, PolyTree, RootQuery, TypeRegistry
from polytreelib.adapters import InMemoryEntityStore, InMemoryNodeStore


def show(node, indent=0):
    label = node.payload.get('name') or node.payload.get('text')
    print(f"{'  ' * indent}{node.type}#{node.id}: {label}")
    for child in node.children or ():
        show(child, indent + 1)


async def main():
    """Build a small mixed tree and query it."""
    nodes = InMemoryNodeStore()
    registry = TypeRegistry()
    registry.register('Folder', entity_store=InMemoryEntityStore(), node_store=nodes,
                      parent_property='parent', parent_type='Folder')
    registry.register('File', entity_store=InMemoryEntityStore(), node_store=nodes,
                      parent_property='folder', parent_type='Folder')
    registry.register('Comment', entity_store=InMemoryEntityStore(), node_store=nodes,
                      parent_property='on')
    tree = PolyTree(registry.freeze())

    folders = tree.repository('Folder')
    files = tree.repository('File')
    comments = tree.repository('Comment')

    docs = await folders.save({'name': 'docs'})
    drafts = await folders.save({'name': 'drafts', 'parent': docs})
    readme = await files.save({'name': 'README.md', 'folder': docs})
    await files.save({'name': 'plan.md', 'folder': drafts})
    await comments.save({'text': 'needs a table of contents',
                         'on': EntityRef('File', readme['id'])})

    print("\nFull forest:")
    for root in await folders.find_roots(RootQuery.full_forest()):
        show(root)

    print("\nAncestors of every comment:")
    for node in await comments.find_parents():
        chain = " <- ".join(f"{a.type}#{a.id}" for a in node.ancestors())
        print(f"  {node.payload['text']!r}: {chain}")

    print("\nSiblings of drafts:")
    result = await folders.find_siblings({'name': 'drafts'})
    for sibling in result[0].siblings:
        print(f"  {sibling.type}#{sibling.id}: {sibling.payload['name']}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print("PolyTreeLib - Basic Example")
    print("=" * 50)
    asyncio.run(main())
