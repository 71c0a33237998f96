"""Property tests for RowCache changeset application."""

from hypothesis import given, settings
from hypothesis import strategies as st

from gridcache.data.memory_source import InMemoryRemoteSource
from gridcache.data.row_cache import RowCache
from gridcache.models.change_reason import DeleteReason, InsertReason
from gridcache.models.row import InsertedRow, RowOrder, RowsChangeset

VIEW_ID = "grid"


def make_cache(ids):
    cache = RowCache(VIEW_ID, InMemoryRemoteSource())
    cache.set_rows_and_fields([RowOrder(row_id) for row_id in ids], [])
    return cache


@st.composite
def rows_and_deletions(draw):
    count = draw(st.integers(min_value=0, max_value=30))
    ids = [f"r{i}" for i in range(count)]
    deleted = draw(st.lists(st.sampled_from(ids), unique=True) if ids else st.just([]))
    return ids, deleted


@st.composite
def rows_and_insertions(draw):
    count = draw(st.integers(min_value=0, max_value=20))
    ids = [f"r{i}" for i in range(count)]
    inserts = draw(st.integers(min_value=0, max_value=10))
    # Insertion k lands on the list after k earlier insertions
    indexes = sorted(
        draw(st.lists(st.integers(min_value=0, max_value=count), min_size=inserts, max_size=inserts))
    )
    inserted = [InsertedRow(index + k, RowOrder(f"n{k}")) for k, index in enumerate(indexes)]
    return ids, inserted


class TestRowCacheProperties:
    """Properties that must hold for any changeset."""

    @given(rows_and_deletions())
    @settings(max_examples=100)
    def test_deletion_removes_exactly_the_deleted(self, case):
        ids, deleted = case
        cache = make_cache(ids)
        reasons = []
        cache.add_listener(lambda rows, reason: reasons.append(reason))

        cache.apply_changeset(RowsChangeset(view_id=VIEW_ID, deleted_rows=tuple(deleted)))

        remaining = [row.row_id for row in cache.current_rows()]
        assert remaining == [row_id for row_id in ids if row_id not in deleted]
        if deleted:
            (reason,) = reasons
            assert isinstance(reason, DeleteReason)
            # Recorded indexes point into the pre-removal list
            assert all(ids[index] == row.row_id for index, row in reason.items)
            assert sorted(row.row_id for _, row in reason.items) == sorted(deleted)
        else:
            assert reasons == []

    @given(rows_and_insertions())
    @settings(max_examples=100)
    def test_inserted_rows_land_at_their_index(self, case):
        ids, inserted = case
        cache = make_cache(ids)
        reasons = []
        cache.add_listener(lambda rows, reason: reasons.append(reason))

        cache.apply_changeset(RowsChangeset(view_id=VIEW_ID, inserted_rows=tuple(inserted)))

        result = [row.row_id for row in cache.current_rows()]
        assert len(result) == len(ids) + len(inserted)
        for item in inserted:
            assert result[item.index] == item.row_order.row_id
        # Existing rows keep their relative order
        assert [row_id for row_id in result if row_id in ids] == ids
        if inserted:
            assert reasons == [
                InsertReason(tuple((item.index, item.row_order.row_id) for item in inserted))
            ]
        else:
            assert reasons == []
