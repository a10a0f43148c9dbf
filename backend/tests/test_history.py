import json

import pytest

from client.history import HISTORY_KEY, HISTORY_LIMIT, HistoryStore, add_to_history, parse_history
from client.storage import LocalStorage
from errors import MalformedLocalStateError
from models import GeneratedImage


def _image(n):
    return GeneratedImage(id=f"img{n}", url=f"https://img.example/{n}.png", prompt=f"prompt {n}",
                          aspectRatio="1:1", timestamp=1_700_000_000_000 + n)


def test_history_is_most_recent_first_and_capped():
    history = []
    for n in range(HISTORY_LIMIT):
        history = add_to_history(history, _image(n))
    assert len(history) == 20
    assert history[0].id == "img19"
    assert history[-1].id == "img0"

    history = add_to_history(history, _image(20))
    assert len(history) == 20
    assert history[0].id == "img20"
    assert history[-1].id == "img1"
    assert "img0" not in [image.id for image in history]


@pytest.mark.parametrize("raw", ["{not json", '{"id": "x"}', '[{"id": "x"}]',
                                 '[{"id": "a", "url": "u", "prompt": "p", "aspectRatio": "2:1", "timestamp": 1}]'])
def test_parse_history_rejects_malformed_state(raw):
    with pytest.raises(MalformedLocalStateError):
        parse_history(raw)


@pytest.mark.asyncio
async def test_local_storage_items(engine):
    storage = LocalStorage(engine)
    assert await storage.get_item("k") is None
    await storage.set_item("k", "one")
    await storage.set_item("k", "two")
    assert await storage.get_item("k") == "two"
    await storage.remove_item("k")
    assert await storage.get_item("k") is None


@pytest.mark.asyncio
async def test_history_survives_reload(engine):
    store = HistoryStore(LocalStorage(engine))
    await store.save([_image(2), _image(1)])

    reloaded = await HistoryStore(LocalStorage(engine)).load()

    assert [image.id for image in reloaded] == ["img2", "img1"]
    assert reloaded[0].timestamp == 1_700_000_000_002


@pytest.mark.asyncio
async def test_malformed_history_loads_empty(engine, caplog):
    storage = LocalStorage(engine)
    await storage.set_item(HISTORY_KEY, "[{broken")

    history = await HistoryStore(storage).load()

    assert history == []
    assert "Failed to parse history" in caplog.text


@pytest.mark.asyncio
async def test_history_is_stored_as_json_list(engine):
    storage = LocalStorage(engine)
    await HistoryStore(storage).save([_image(1)])
    stored = json.loads(await storage.get_item(HISTORY_KEY))
    assert stored == [{"id": "img1", "url": "https://img.example/1.png", "prompt": "prompt 1",
                       "aspectRatio": "1:1", "timestamp": 1_700_000_000_001}]
