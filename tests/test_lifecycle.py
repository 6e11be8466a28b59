"""
Resource table and handle lifecycle tests.

Run with: pytest tests/test_lifecycle.py -v
"""

import gc
import threading

import pytest

from xslt_bridge import (
    DocumentHandle,
    InvalidArgument,
    ReleasedHandle,
    ResourceKind,
    ResourceTable,
    StylesheetHandle,
    get_table,
)


class Resource:
    """Stand-in engine object."""


@pytest.fixture
def released():
    return []


class TestResourceTable:
    """Registration, release and statistics."""

    def test_register_returns_distinct_tokens(self, table):
        """Each registration gets its own token."""
        first = table.register(ResourceKind.DOCUMENT, Resource())
        second = table.register(ResourceKind.DOCUMENT, Resource())
        assert first != second
        assert len(table) == 2

    def test_release_calls_callback_with_resource(self, table, released):
        """The callback receives exactly the registered resource."""
        resource = Resource()
        token = table.register(ResourceKind.DOCUMENT, resource, released.append)
        assert table.release(token) is True
        assert released == [resource]
        assert not table.is_live(token)

    def test_release_twice_fires_once(self, table, released):
        """A second release is a no-op."""
        token = table.register(ResourceKind.DOCUMENT, Resource(), released.append)
        table.release(token)
        assert table.release(token) is False
        assert len(released) == 1

    def test_release_unknown_token(self, table):
        """Releasing a token that never existed is a no-op."""
        assert table.release(999) is False

    def test_no_aliasing(self, table):
        """The same resource cannot be registered twice."""
        resource = Resource()
        table.register(ResourceKind.DOCUMENT, resource)
        with pytest.raises(InvalidArgument, match="already registered"):
            table.register(ResourceKind.STYLESHEET, resource)

    def test_reregister_after_release(self, table):
        """Once released, an object may be registered again under a new token."""
        resource = Resource()
        first = table.register(ResourceKind.DOCUMENT, resource)
        table.release(first)
        second = table.register(ResourceKind.DOCUMENT, resource)
        assert second != first

    def test_register_none_rejected(self, table):
        """An empty resource cannot be registered."""
        with pytest.raises(InvalidArgument):
            table.register(ResourceKind.DOCUMENT, None)

    def test_table_drops_its_reference(self, table):
        """After release the table holds no reference to the resource."""
        holder = []
        token = table.register(ResourceKind.DOCUMENT, Resource(), holder.append)
        table.release(token)
        assert len(table) == 0
        assert table.kind_of(token) is None

    def test_stats(self, table):
        """Statistics count live and released records by kind."""
        doc = table.register(ResourceKind.DOCUMENT, Resource())
        table.register(ResourceKind.STYLESHEET, Resource())
        table.release(doc)
        stats = table.stats()
        assert stats['live'] == 1
        assert stats['documents'] == 0
        assert stats['stylesheets'] == 1
        assert stats['registered'] == 2
        assert stats['released'] == 1

    def test_release_all(self, table, released):
        """release_all empties the table."""
        for _ in range(3):
            table.register(ResourceKind.DOCUMENT, Resource(), released.append)
        assert table.release_all() == 3
        assert len(table) == 0
        assert len(released) == 3


class TestLeases:
    """Leases keep resources alive for the duration of a call."""

    def test_lease_yields_record(self, table):
        """The lease exposes the live record."""
        resource = Resource()
        token = table.register(ResourceKind.DOCUMENT, resource)
        with table.lease(token, ResourceKind.DOCUMENT) as record:
            assert record.resource is resource
            assert record.leases == 1
        assert record.leases == 0

    def test_release_deferred_while_leased(self, table, released):
        """A release requested during a lease happens when the lease ends."""
        token = table.register(ResourceKind.DOCUMENT, Resource(), released.append)
        with table.lease(token, ResourceKind.DOCUMENT):
            assert table.release(token) is True
            assert table.is_live(token)
            assert released == []
        assert not table.is_live(token)
        assert len(released) == 1

    def test_nested_leases(self, table, released):
        """Release waits for the outermost lease."""
        token = table.register(ResourceKind.DOCUMENT, Resource(), released.append)
        with table.lease(token, ResourceKind.DOCUMENT):
            with table.lease(token, ResourceKind.DOCUMENT):
                table.release(token)
            assert released == []
        assert len(released) == 1

    def test_lease_released_token(self, table):
        """Leasing a released token raises ReleasedHandle."""
        token = table.register(ResourceKind.DOCUMENT, Resource())
        table.release(token)
        with pytest.raises(ReleasedHandle):
            with table.lease(token, ResourceKind.DOCUMENT):
                pass

    def test_lease_wrong_kind(self, table):
        """A document token is never accepted as a stylesheet."""
        token = table.register(ResourceKind.DOCUMENT, Resource())
        with pytest.raises(InvalidArgument) as exc_info:
            with table.lease(token, ResourceKind.STYLESHEET):
                pass
        assert not isinstance(exc_info.value, ReleasedHandle)
        assert table.is_live(token)

    def test_lease_released_on_exception(self, table):
        """An exception inside the lease still ends it."""
        token = table.register(ResourceKind.DOCUMENT, Resource())
        with pytest.raises(RuntimeError):
            with table.lease(token, ResourceKind.DOCUMENT):
                raise RuntimeError("boom")
        assert table.stats()['leased'] == 0

    def test_concurrent_release_and_lease(self, table, released):
        """Releases racing with leases still fire exactly once."""
        tokens = [table.register(ResourceKind.DOCUMENT, Resource(), released.append)
                  for _ in range(50)]
        barrier = threading.Barrier(2)

        def lease_all():
            barrier.wait()
            for token in tokens:
                try:
                    with table.lease(token, ResourceKind.DOCUMENT):
                        pass
                except ReleasedHandle:
                    pass

        def release_all():
            barrier.wait()
            for token in tokens:
                table.release(token)

        threads = [threading.Thread(target=lease_all), threading.Thread(target=release_all)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(table) == 0
        assert len(released) == 50


class TestHandles:
    """Handles carry a token and release deterministically."""

    def test_handle_carries_only_token(self, table):
        """The engine object is not reachable from the handle."""
        resource = Resource()
        handle = DocumentHandle.create(resource, table=table)
        assert isinstance(handle.token, int)
        assert not hasattr(handle, '__dict__')
        assert all(getattr(handle, slot, None) is not resource
                   for slot in ('_token', '_table', '_finalizer'))

    def test_close(self, table, released):
        """close() releases the resource once."""
        handle = DocumentHandle.create(Resource(), table=table, release_fn=released.append)
        assert not handle.closed
        handle.close()
        handle.close()
        assert handle.closed
        assert len(released) == 1

    def test_context_manager(self, table):
        """Leaving a with block releases the resource."""
        with StylesheetHandle.create(Resource(), table=table) as handle:
            assert table.is_live(handle.token)
        assert handle.closed
        assert len(table) == 0

    def test_unreachable_handle_is_released(self, table, released):
        """Dropping the last reference releases the resource."""
        handle = DocumentHandle.create(Resource(), table=table, release_fn=released.append)
        token = handle.token
        del handle
        gc.collect()
        assert not table.is_live(token)
        assert len(released) == 1

    def test_lease_uses_handle_kind(self, table):
        """Handles lease with their own kind."""
        handle = StylesheetHandle.create(Resource(), table=table)
        with handle.lease() as record:
            assert record.kind == ResourceKind.STYLESHEET

    def test_close_during_lease_is_deferred(self, table, released):
        """Closing a handle that is in use waits for the call to finish."""
        handle = DocumentHandle.create(Resource(), table=table, release_fn=released.append)
        with handle.lease():
            handle.close()
            assert released == []
        assert handle.closed
        assert len(released) == 1

    def test_defaults_to_global_table(self):
        """Without an explicit table, handles use the global one."""
        handle = DocumentHandle.create(Resource())
        assert handle.table is get_table()
        handle.close()

    def test_repr(self, table):
        """repr shows the class, token and state."""
        handle = DocumentHandle.create(Resource(), table=table)
        assert repr(handle) == f"<DocumentHandle token={handle.token} live>"
        handle.close()
        assert repr(handle).endswith("closed>")

    def test_stress_create_and_discard(self, table, released):
        """Many discarded handles are all released exactly once."""
        for _ in range(2000):
            DocumentHandle.create(Resource(), table=table, release_fn=released.append)
        gc.collect()
        stats = table.stats()
        assert stats['live'] == 0
        assert stats['registered'] == stats['released'] == 2000
        assert len(released) == 2000
