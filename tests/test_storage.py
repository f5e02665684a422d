import json

from issuerelay_client.storage import QUEUE_KEY, RECENT_KEY, JsonFileStore, MemoryStore, get_store


def test_json_file_store_round_trips_and_keeps_keys_separate(tmp_path):
  store = JsonFileStore(tmp_path / "state")

  store.save(QUEUE_KEY, [{"type": "bug", "retry_count": 0}])
  store.save(RECENT_KEY, [{"id": "abc"}])

  assert store.load(QUEUE_KEY) == [{"type": "bug", "retry_count": 0}]
  assert store.load(RECENT_KEY) == [{"id": "abc"}]
  assert json.loads(store.path_for(QUEUE_KEY).read_text()) == [{"type": "bug", "retry_count": 0}]


def test_missing_key_loads_empty(tmp_path):
  assert JsonFileStore(tmp_path).load(QUEUE_KEY) == []
  assert MemoryStore().load(QUEUE_KEY) == []


def test_corrupt_file_loads_empty_and_logs(tmp_path, caplog):
  store = JsonFileStore(tmp_path)
  store.path_for(QUEUE_KEY).write_text("[{broken")

  assert store.load(QUEUE_KEY) == []
  assert "Discarding unreadable stored data" in caplog.text


def test_wrong_shape_loads_empty(tmp_path):
  store = JsonFileStore(tmp_path)
  store.path_for(QUEUE_KEY).write_text(json.dumps({"not": "a list"}))

  assert store.load(QUEUE_KEY) == []


def test_save_replaces_previous_contents_without_leaving_temp_files(tmp_path):
  store = JsonFileStore(tmp_path)
  store.save(QUEUE_KEY, [{"n": 1}, {"n": 2}])
  store.save(QUEUE_KEY, [{"n": 2}])

  assert store.load(QUEUE_KEY) == [{"n": 2}]
  assert sorted(p.name for p in tmp_path.iterdir()) == [f"{QUEUE_KEY}.json"]


def test_get_store_picks_backend(tmp_path):
  assert isinstance(get_store(None), MemoryStore)
  file_store = get_store(tmp_path)
  assert isinstance(file_store, JsonFileStore)
  assert file_store.directory == tmp_path
