import pytest

from app.errors import BlobNotFound, BlobStoreError, PersistenceError, ScreenshotUnavailable
from app.services.entry_query import (
    PAGE_SIZE,
    EntryListView,
    EntryQuery,
    ViewStatus,
    filter_records,
    paginate,
    sort_records,
    total_pages,
)


@pytest.fixture
def sample(entry):
    return [
        entry(1, 1000.0, "Gold", minutes=1, notes="Tanishq coin"),
        entry(2, 2500.5, "Silver", minutes=2, notes="silver bar for Diwali"),
        entry(3, 500.0, "Gold", minutes=3),
        entry(4, 7500.0, "Silver", minutes=4, notes="Anniversary"),
        entry(5, 1200.0, "Gold", minutes=5, notes="SIP month 3"),
    ]


# ---- filter ----

def test_empty_search_and_all_filter_keep_everything(sample):
    assert filter_records(sample, "", "all") == sample


def test_search_matches_notes_case_insensitively(sample):
    result = filter_records(sample, "DIWALI")
    assert [r.id for r in result] == [2]


def test_search_matches_stringified_amount(sample):
    assert [r.id for r in filter_records(sample, "2500.5")] == [2]
    # 1000.0 is searched as "1000", so "1000.0" does not match
    assert filter_records(sample, "1000.0") == []
    assert [r.id for r in filter_records(sample, "1000")] == [1]


def test_search_matches_category(sample):
    result = filter_records(sample, "silv")
    assert sorted(r.id for r in result) == [2, 4]


def test_category_filter(sample):
    result = filter_records(sample, "", "Gold")
    assert [r.id for r in result] == [1, 3, 5]


def test_search_and_category_filter_combine(sample):
    result = filter_records(sample, "an", "Silver")
    assert [r.id for r in result] == [4]


@pytest.mark.parametrize(
    "term,category",
    [("", "Gold"), ("o", "all"), ("00", "Silver"), ("zzz", "all"), ("sip", "Gold")],
)
def test_filter_result_is_subset_satisfying_predicate(sample, term, category):
    result = filter_records(sample, term, category)
    for record in result:
        assert record in sample
        if category != "all":
            assert record.category == category
        if term:
            haystack = " ".join(
                [(record.notes or "").lower(), record.category.lower(), str(record.amount)]
            )
            assert term.lower() in haystack or term in f"{record.amount:g}"


def test_records_without_notes_are_searchable(sample):
    assert [r.id for r in filter_records(sample, "500")] == [2, 3, 4]


# ---- sort ----

def test_sort_amount_ascending_is_non_decreasing(sample):
    amounts = [r.amount for r in sort_records(sample, "amount", "asc")]
    assert amounts == sorted(amounts)


def test_sort_amount_descending(sample):
    amounts = [r.amount for r in sort_records(sample, "amount", "desc")]
    assert amounts == sorted(amounts, reverse=True)


def test_sort_by_date(sample):
    assert [r.id for r in sort_records(sample, "date", "desc")] == [5, 4, 3, 2, 1]
    assert [r.id for r in sort_records(sample, "date", "asc")] == [1, 2, 3, 4, 5]


def test_sort_by_category_is_lexicographic(sample):
    categories = [r.category for r in sort_records(sample, "category", "asc")]
    assert categories == ["Gold", "Gold", "Gold", "Silver", "Silver"]
    categories = [r.category for r in sort_records(sample, "category", "desc")]
    assert categories == ["Silver", "Silver", "Gold", "Gold", "Gold"]


def test_sort_is_deterministic_for_ties(entry):
    records = [entry(i, 100.0, minutes=i) for i in range(1, 6)]
    first = [r.id for r in sort_records(records, "amount", "asc")]
    second = [r.id for r in sort_records(records, "amount", "asc")]
    assert first == second


def test_sort_does_not_mutate_input(sample):
    before = [r.id for r in sample]
    sort_records(sample, "amount", "desc")
    assert [r.id for r in sample] == before


# ---- paginate ----

@pytest.mark.parametrize("count", [0, 1, 9, 10, 11, 25, 30])
def test_pages_reconstruct_the_list(entry, count):
    items = [entry(i, 100.0 + i, minutes=i) for i in range(count)]
    pages = total_pages(len(items))

    assert pages == -(-count // PAGE_SIZE)

    rebuilt = []
    for page in range(1, pages + 1):
        chunk = paginate(items, page)
        assert len(chunk) <= PAGE_SIZE
        rebuilt.extend(chunk)
    assert rebuilt == items


def test_total_pages_zero_for_empty():
    assert total_pages(0) == 0


# ---- query state ----

def test_from_params_falls_back_on_unknown_values():
    query = EntryQuery.from_params(search="  gold  ", category="Platinum", sort="weight", dir="up", page="x")
    assert query == EntryQuery(search_term="gold")


def test_changing_inputs_resets_page():
    query = EntryQuery(page=3)
    assert query.with_changes(search_term="coin").page == 1
    assert query.with_changes(category_filter="Gold").page == 1
    assert query.with_changes(sort_key="amount").page == 1
    assert query.with_changes(sort_dir="asc").page == 1
    assert query.toggle_sort("amount").page == 1
    assert query.cleared().page == 1


def test_toggle_sort():
    query = EntryQuery()
    assert (query.toggle_sort("date").sort_key, query.toggle_sort("date").sort_dir) == ("date", "asc")

    by_amount = query.toggle_sort("amount")
    assert (by_amount.sort_key, by_amount.sort_dir) == ("amount", "desc")
    assert by_amount.toggle_sort("amount").sort_dir == "asc"


def test_cleared_keeps_sort():
    query = EntryQuery(search_term="x", category_filter="Gold", sort_key="amount", sort_dir="asc")
    cleared = query.cleared()
    assert not cleared.filters_active
    assert (cleared.sort_key, cleared.sort_dir) == ("amount", "asc")


def test_to_params_omits_defaults():
    assert EntryQuery().to_params() == {}
    params = EntryQuery(search_term="coin", category_filter="Gold", sort_key="amount", sort_dir="asc", page=2).to_params()
    assert params == {"search": "coin", "category": "Gold", "sort": "amount", "dir": "asc", "page": 2}


# ---- view ----

def test_view_loads_and_totals(fake_store, blob_store, events, sample):
    fake_store.records = sample
    view = EntryListView(fake_store, blob_store, events)

    assert view.status == ViewStatus.LOADING
    assert view.refresh() == ViewStatus.LOADED
    assert view.total == pytest.approx(12700.5)
    assert [r.id for r in view.records] == [5, 4, 3, 2, 1]


def test_view_load_error(fake_store, blob_store, events):
    fake_store.fail_load = True
    view = EntryListView(fake_store, blob_store, events)

    assert view.refresh() == ViewStatus.ERRORED
    assert "connection refused" in view.error
    assert view.records == []


def test_view_recovers_on_next_refresh(fake_store, blob_store, events, sample):
    fake_store.records = sample
    fake_store.fail_load = True
    view = EntryListView(fake_store, blob_store, events)
    view.refresh()

    fake_store.fail_load = False
    assert view.refresh() == ViewStatus.LOADED
    assert view.error is None


def test_empty_store_state(fake_store, blob_store, events):
    view = EntryListView(fake_store, blob_store, events)
    view.refresh()

    assert view.is_empty_store
    assert not view.has_no_results
    assert view.total == 0
    assert view.total_pages == 0
    assert view.page_items == []
    assert view.export_csv() is None


def test_no_results_state_is_distinct(fake_store, blob_store, events, sample):
    fake_store.records = sample
    view = EntryListView(fake_store, blob_store, events, EntryQuery(search_term="platinum"))
    view.refresh()

    assert view.has_no_results
    assert not view.is_empty_store
    assert view.query.filters_active


def test_eleven_records_two_pages(fake_store, blob_store, events, entry):
    fake_store.records = [entry(i, 100.0 * i, minutes=i) for i in range(1, 12)]
    view = EntryListView(fake_store, blob_store, events)
    view.refresh()

    assert view.total_pages == 2
    assert [r.id for r in view.page_items] == list(range(11, 1, -1))
    assert view.result_range == (1, 10, 11)

    view.set_query(view.query.with_page(2))
    assert [r.id for r in view.page_items] == [1]
    assert view.result_range == (11, 11, 11)


def test_out_of_range_page_is_clamped(fake_store, blob_store, events, entry):
    fake_store.records = [entry(i, 100.0, minutes=i) for i in range(1, 12)]
    view = EntryListView(fake_store, blob_store, events, EntryQuery(page=9))
    view.refresh()

    assert view.current_page == 2
    assert len(view.page_items) == 1


def test_page_resets_when_record_set_changes(fake_store, blob_store, events, entry):
    fake_store.records = [entry(i, 100.0, minutes=i) for i in range(1, 12)]
    view = EntryListView(fake_store, blob_store, events, EntryQuery(page=2))
    view.refresh()
    assert view.current_page == 2

    # same data: page kept
    view.refresh()
    assert view.query.page == 2

    fake_store.records.append(entry(12, 50.0, minutes=12))
    view.refresh()
    assert view.query.page == 1


def test_two_step_delete(fake_store, blob_store, events, sample):
    fake_store.records = sample
    view = EntryListView(fake_store, blob_store, events)
    view.refresh()

    assert view.confirm_delete() is False

    view.request_delete(3)
    view.cancel_delete()
    assert view.confirm_delete() is False
    assert fake_store.deleted == []

    view.request_delete(3)
    assert view.confirm_delete() is True
    assert fake_store.deleted == [3]
    assert view.pending_delete is None
    assert 3 not in [r.id for r in view.records]
    assert view.total == pytest.approx(12700.5 - 500.0)


def test_delete_publishes_record_set_changed(fake_store, blob_store, events, sample):
    calls = []
    events.subscribe(lambda: calls.append("changed"))
    fake_store.records = sample
    view = EntryListView(fake_store, blob_store, events)
    view.refresh()

    view.request_delete(1)
    view.confirm_delete()
    assert calls == ["changed"]


def test_delete_removes_screenshot(fake_store, blob_store, events, entry):
    blob_store.upload("screenshots/1_abc.png", b"png", "image/png")
    fake_store.records = [entry(1, 1000.0, screenshot_path="screenshots/1_abc.png")]
    view = EntryListView(fake_store, blob_store, events)
    view.refresh()

    view.request_delete(1)
    view.confirm_delete()

    assert view.records == []
    with pytest.raises(BlobNotFound):
        blob_store.signed_url("screenshots/1_abc.png", 60)


def test_blob_failure_does_not_undo_delete(fake_store, blob_store, events, entry, monkeypatch):
    def broken_remove(paths):
        raise BlobStoreError("disk gone")

    monkeypatch.setattr(blob_store, "remove", broken_remove)
    fake_store.records = [entry(1, 1000.0, screenshot_path="screenshots/1_abc.png"), entry(2, 10.0)]
    view = EntryListView(fake_store, blob_store, events)
    view.refresh()

    view.request_delete(1)
    assert view.confirm_delete() is True
    assert [r.id for r in fake_store.select_all()] == [2]


def test_store_delete_failure_raises(fake_store, blob_store, events, sample):
    fake_store.records = sample
    fake_store.fail_delete = True
    view = EntryListView(fake_store, blob_store, events)
    view.refresh()

    view.request_delete(2)
    with pytest.raises(PersistenceError):
        view.confirm_delete()
    assert len(view.records) == 5


def test_delete_of_unknown_record_is_ignored(fake_store, blob_store, events, sample):
    fake_store.records = sample
    view = EntryListView(fake_store, blob_store, events)
    view.refresh()

    view.request_delete(99)
    assert view.confirm_delete() is False
    assert fake_store.deleted == []


def test_screenshot_url(fake_store, blob_store, events, entry):
    blob_store.upload("screenshots/2_x.jpg", b"jpg", "image/jpeg")
    fake_store.records = [entry(1, 10.0), entry(2, 20.0, screenshot_path="screenshots/2_x.jpg")]
    view = EntryListView(fake_store, blob_store, events)
    view.refresh()

    assert view.screenshot_url(2).startswith("/blobs/")

    with pytest.raises(ScreenshotUnavailable):
        view.screenshot_url(1)


def test_screenshot_url_missing_blob(fake_store, blob_store, events, entry):
    fake_store.records = [entry(1, 10.0, screenshot_path="screenshots/gone.png")]
    view = EntryListView(fake_store, blob_store, events)
    view.refresh()

    with pytest.raises(ScreenshotUnavailable):
        view.screenshot_url(1)


def test_export_ignores_filters(fake_store, blob_store, events, sample):
    fake_store.records = sample
    view = EntryListView(fake_store, blob_store, events, EntryQuery(search_term="diwali", page=1))
    view.refresh()

    csv_text = view.export_csv()
    lines = csv_text.strip().split("\n")
    assert len(lines) == 1 + len(sample)
