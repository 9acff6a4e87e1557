import pytest
import pytest_asyncio

from anisync.database.watch_store import LastWatched, WatchStore, read_token


@pytest_asyncio.fixture
async def store(tmp_path):
    return WatchStore(tmp_path / "history" / "anisync_history.csv")


@pytest.mark.asyncio
async def test_missing_file_reads_empty(store):
    assert await store.all() == []
    assert await store.find_by_show_id(1) is None


@pytest.mark.asyncio
async def test_upsert_and_find(store):
    await store.upsert(154587, "ReooPAxPMsHM4KPMY", 3, 420, 8.5, "Frieren")

    entry = await store.find_by_show_id(154587)
    assert entry is not None
    assert entry.provider_show_id == "ReooPAxPMsHM4KPMY"
    assert entry.episode_number == 3
    assert entry.playback_seconds == 420
    assert entry.score == 8.5
    assert entry.title == "Frieren"


@pytest.mark.asyncio
async def test_upsert_keeps_one_entry_per_show(store):
    await store.upsert(1, "a", 1, 100, 0, "One")
    await store.upsert(2, "b", 5, 0, 0, "Two")
    await store.upsert(1, "a", 2, 0, 0, "One")

    entries = await store.all()
    assert len(entries) == 2
    assert (await store.find_by_show_id(1)).episode_number == 2
    assert (await store.find_by_show_id(2)).episode_number == 5


@pytest.mark.asyncio
async def test_title_with_commas_survives(store):
    await store.upsert(7, "x", 1, 0, 0, "Re:Zero, Starting Life in Another World")
    entry = await store.find_by_show_id(7)
    assert entry.title == "Re:Zero, Starting Life in Another World"


@pytest.mark.asyncio
async def test_malformed_rows_and_duplicates(tmp_path):
    path = tmp_path / "anisync_history.csv"
    path.write_text(
        "1,a,1,30,0,Old Title\n"
        "garbage line\n"
        "two,b,1,0,0,Bad Id\n"
        "1,a,4,0,0,New Title\n"
        "3,c,2,15,7.0,Unquoted, legacy title\n",
        encoding="utf-8",
    )
    store = WatchStore(path)

    entries = {e.show_id: e for e in await store.all()}
    assert set(entries) == {1, 3}
    assert entries[1].episode_number == 4
    assert entries[1].title == "New Title"
    assert entries[3].title == "Unquoted, legacy title"


@pytest.mark.asyncio
async def test_writes_leave_no_temp_files(store):
    await store.upsert(1, "a", 1, 0, 0, "One")
    await store.upsert(1, "a", 2, 0, 0, "One")
    files = [p.name for p in store.path.parent.iterdir()]
    assert files == ["anisync_history.csv"]


@pytest.mark.asyncio
async def test_delete(store):
    await store.upsert(1, "a", 1, 0, 0, "One")
    assert await store.delete(1) is True
    assert await store.delete(1) is False
    assert await store.all() == []


@pytest.mark.asyncio
async def test_last_watched_round_trip(tmp_path):
    last = LastWatched(tmp_path / "anisync_id")
    assert await last.read() is None
    await last.write(154587)
    assert await last.read() == 154587

    (tmp_path / "anisync_id").write_text("not a number", encoding="utf-8")
    assert await last.read() is None


@pytest.mark.asyncio
async def test_read_token(tmp_path):
    assert await read_token(tmp_path / "token") is None
    (tmp_path / "token").write_text("  abc.def  \n", encoding="utf-8")
    assert await read_token(tmp_path / "token") == "abc.def"
