"""Tests for the roots, ancestors, descendants and siblings queries."""

import pytest

from polytreelib import (
    DataIntegrityMismatch,
    EntityNotTracked,
    FailFastPolicy,
    RootQuery,
)


async def build_scenario(world):
    """Folder A with Files B and C.

    Structure:
        A (Folder#1)
        ├── B (File#1)
        └── C (File#2)
    """
    a = await world.repo('Folder').save({'name': 'A'})
    b = await world.repo('File').save({'name': 'B', 'folder': a})
    c = await world.repo('File').save({'name': 'C', 'folder': a})
    return a, b, c


async def build_deep(world):
    """Folders and Files recurring at several depths.

    Structure:
        root (Folder#1)
        ├── docs (Folder#2)
        │   ├── one.txt (File#1)
        │   └── drafts (Folder#3)
        │       └── two.txt (File#2)
        └── readme (File#3)
    """
    folders, files = world.repo('Folder'), world.repo('File')
    root = await folders.save({'name': 'root'})
    docs = await folders.save({'name': 'docs', 'parent': root})
    one = await files.save({'name': 'one.txt', 'folder': docs})
    drafts = await folders.save({'name': 'drafts', 'parent': docs})
    two = await files.save({'name': 'two.txt', 'folder': drafts})
    readme = await files.save({'name': 'readme', 'folder': root})
    return {
        'root': root, 'docs': docs, 'one': one,
        'drafts': drafts, 'two': two, 'readme': readme,
    }


def names(nodes):
    return [n.payload['name'] for n in nodes]


class TestScenario:
    """The folder/file scenario end to end."""

    @pytest.mark.asyncio
    async def test_find_children(self, world):
        a, b, c = await build_scenario(world)

        result = await world.repo('Folder').find_children({'id': a['id']})

        assert result.ok
        assert len(result) == 1
        assert result[0].payload == a
        assert names(result[0].children) == ['B', 'C']
        assert [child.type for child in result[0].children] == ['File', 'File']

    @pytest.mark.asyncio
    async def test_find_siblings(self, world):
        a, b, c = await build_scenario(world)

        result = await world.repo('File').find_siblings({'id': b['id']})

        assert result[0].payload == b
        assert names(result[0].siblings) == ['C']
        assert result[0].siblings[0].siblings is None

    @pytest.mark.asyncio
    async def test_find_parents(self, world):
        a, b, c = await build_scenario(world)

        result = await world.repo('File').find_parents({'name': 'C'})

        assert result[0].payload == c
        assert result[0].parent.payload == a
        assert result[0].parent.parent is None


class TestRoots:
    """Test roots queries."""

    @pytest.mark.asyncio
    async def test_bare_roots(self, world):
        nodes = await build_deep(world)
        loose = await world.repo('File').save({'name': 'loose'})

        roots = await world.repo('Folder').find_roots()

        assert [r.key for r in roots] == [('Folder', nodes['root']['id']), ('File', loose['id'])]
        assert all(r.children is None and r.parent is None for r in roots)

    @pytest.mark.asyncio
    async def test_one_lookup_per_type_for_whole_forest(self, world):
        await build_deep(world)
        world.log.clear()

        roots = await world.repo('Folder').find_roots(RootQuery.full_forest())

        assert world.log.count('find_by_ids', 'Folder') == 1
        assert world.log.count('find_by_ids', 'File') == 1
        assert world.log.count('find_by_ids', 'Comment') == 0
        root = roots[0]
        assert names(root.children) == ['docs', 'readme']
        assert names(root.children[0].children) == ['one.txt', 'drafts']
        assert names(root.children[0].children[1].children) == ['two.txt']

    @pytest.mark.asyncio
    async def test_depth_bounded_roots(self, world):
        await build_deep(world)

        roots = await world.repo('Folder').find_roots(RootQuery(depth=1))

        assert names(roots[0].children) == ['docs', 'readme']
        assert roots[0].children[0].children == ()

    @pytest.mark.asyncio
    async def test_empty_forest(self, world):
        assert await world.repo('Folder').find_roots() == []


class TestForestRecovery:
    """Roots plus recursive children recover exactly what was created."""

    @pytest.mark.asyncio
    async def test_every_entity_recovered_once(self, world):
        nodes = await build_deep(world)
        second = await world.repo('Folder').save({'name': 'second'})
        note = await world.repo('File').save({'name': 'note', 'folder': second})
        loose = await world.repo('File').save({'name': 'loose'})
        created = {('Folder', e['id']) for e in (nodes['root'], nodes['docs'], nodes['drafts'], second)}
        created |= {('File', e['id']) for e in (nodes['one'], nodes['two'], nodes['readme'], note, loose)}

        recovered = []
        for root in await world.repo('Folder').find_roots():
            result = await world.repo(root.type).find_children({'id': root.id})
            assert result.ok
            recovered.extend(node.key for node in result[0].walk())

        assert len(recovered) == len(set(recovered))
        assert set(recovered) == created


class TestDescendants:
    """Test descendant subtrees."""

    @pytest.mark.asyncio
    async def test_candidates_keep_filter_order(self, world):
        await build_deep(world)

        result = await world.repo('Folder').find_children()

        assert names(result) == ['root', 'docs', 'drafts']
        assert names(result[2].children) == ['two.txt']

    @pytest.mark.asyncio
    async def test_single_batch_across_candidates(self, world):
        await build_deep(world)
        world.log.clear()

        await world.repo('Folder').find_children()

        assert world.log.count('find_by_ids', 'Folder') == 1
        assert world.log.count('find_by_ids', 'File') == 1

    @pytest.mark.asyncio
    async def test_depth_limit(self, world):
        nodes = await build_deep(world)

        result = await world.repo('Folder').find_children({'id': nodes['root']['id']}, depth=1)

        assert names(result[0].children) == ['docs', 'readme']
        assert all(child.children == () for child in result[0].children)

    @pytest.mark.asyncio
    async def test_predicate_filter(self, world):
        await build_deep(world)

        result = await world.repo('File').find_children(lambda f: f['name'].endswith('.txt'))

        assert names(result) == ['one.txt', 'two.txt']
        assert all(r.children == () for r in result)


class TestAncestors:
    """Test ancestor chains."""

    @pytest.mark.asyncio
    async def test_full_chain_to_root(self, world):
        nodes = await build_deep(world)

        result = await world.repo('File').find_parents({'id': nodes['two']['id']})

        assert names(result[0].ancestors()) == ['drafts', 'docs', 'root']

    @pytest.mark.asyncio
    async def test_root_has_no_parent(self, world):
        nodes = await build_deep(world)

        result = await world.repo('Folder').find_parents({'id': nodes['root']['id']})

        assert result[0].parent is None


class TestSiblings:
    """Test sibling sets."""

    @pytest.mark.asyncio
    async def test_self_excluded_by_type_and_id(self, world):
        root = await world.repo('Folder').save({'name': 'root'})          # Folder#1
        sub = await world.repo('Folder').save({'name': 'sub', 'parent': root})  # Folder#2
        await world.repo('File').save({'name': 'deep', 'folder': sub})      # File#1
        twin = await world.repo('File').save({'name': 'twin', 'folder': root})  # File#2
        assert sub['id'] == twin['id']

        result = await world.repo('Folder').find_siblings({'id': sub['id']})

        assert [s.key for s in result[0].siblings] == [('File', twin['id'])]

    @pytest.mark.asyncio
    async def test_siblings_never_nest(self, world):
        nodes = await build_deep(world)

        result = await world.repo('Folder').find_siblings({'id': nodes['docs']['id']})

        assert names(result[0].siblings) == ['readme']
        for node in result[0].siblings:
            assert node.siblings is None
            assert node.children is None

    @pytest.mark.asyncio
    async def test_root_has_no_siblings(self, world):
        nodes = await build_deep(world)

        result = await world.repo('Folder').find_siblings({'id': nodes['root']['id']})

        assert result[0].siblings == ()

    @pytest.mark.asyncio
    async def test_only_child(self, world):
        nodes = await build_deep(world)

        result = await world.repo('File').find_siblings({'id': nodes['two']['id']})

        assert result[0].siblings == ()


class TestCandidateFailures:
    """Test per-candidate failure isolation."""

    @pytest.mark.asyncio
    async def test_untracked_candidate_isolated(self, world):
        a, b, c = await build_scenario(world)
        ghost = await world.files.base_store.save({'name': 'ghost'})

        result = await world.repo('File').find_parents()

        assert names(result) == ['B', 'C']
        assert len(result.errors) == 1
        error = result.errors[0]
        assert error.index == 2
        assert error.item == ghost
        assert isinstance(error.error, EntityNotTracked)
        assert error.error.entity_id == ghost['id']

    @pytest.mark.asyncio
    async def test_untracked_candidate_fail_fast(self, world):
        await build_scenario(world)
        await world.files.base_store.save({'name': 'ghost'})

        with pytest.raises(EntityNotTracked):
            await world.repo('File').find_siblings(policy=FailFastPolicy())

    @pytest.mark.asyncio
    async def test_integrity_mismatch_isolated_to_its_candidate(self, world):
        nodes = await build_deep(world)
        await world.files.base_store.delete(nodes['two']['id'])

        result = await world.repo('Folder').find_children()

        # Every folder subtree contains two.txt
        assert len(result.errors) == 3
        assert all(isinstance(e.error, DataIntegrityMismatch) for e in result.errors)

        result = await world.repo('File').find_siblings({'id': nodes['readme']['id']})
        assert result.ok
        assert names(result[0].siblings) == ['docs']

    @pytest.mark.asyncio
    async def test_no_candidates(self, world):
        await build_scenario(world)

        result = await world.repo('File').find_children({'name': 'nothing'})

        assert result.items == []
        assert result.ok
