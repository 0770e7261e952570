"""Shared fixtures for PolyTreeLib tests."""

import pytest

from polytreelib import PolyTree, TypeRegistry
from polytreelib.adapters import InMemoryEntityStore, InMemoryNodeStore
from polytreelib.testing import RecordingEntityStore, StoreCallLog


class TreeWorld:
    """Three entity types sharing one node store.

    - Folder: parent property 'parent' (a Folder record or id)
    - File: parent property 'folder' (a Folder record or id)
    - Comment: parent property 'on' (an EntityRef to anything)

    Every entity store numbers its records from 1, so ids collide across
    types on purpose.
    """

    def __init__(self):
        self.log = StoreCallLog()
        self.nodes = InMemoryNodeStore()
        self.folders = RecordingEntityStore(InMemoryEntityStore(), 'Folder', self.log)
        self.files = RecordingEntityStore(InMemoryEntityStore(), 'File', self.log)
        self.comments = RecordingEntityStore(InMemoryEntityStore(), 'Comment', self.log)

        self.registry = TypeRegistry()
        self.registry.register('Folder', entity_store=self.folders, node_store=self.nodes,
                               parent_property='parent', parent_type='Folder')
        self.registry.register('File', entity_store=self.files, node_store=self.nodes,
                               parent_property='folder', parent_type='Folder')
        self.registry.register('Comment', entity_store=self.comments, node_store=self.nodes,
                               parent_property='on')
        self.registry.freeze()

        self.tree = PolyTree(self.registry)

    def repo(self, type_tag):
        return self.tree.repository(type_tag)


@pytest.fixture
def world():
    return TreeWorld()
