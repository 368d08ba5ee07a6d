import json

import pytest
import yaml
from pydantic import ValidationError
from mrp.engine.loader import load_content


@pytest.fixture
def content_dir(tmp_path):
    (tmp_path / "abilities").mkdir()
    (tmp_path / "statuses").mkdir()
    (tmp_path / "abilities" / "magic.yaml").write_text(yaml.safe_dump([
        {"id": 1, "name": "Blaze", "effects": "Single attack (5.00)", "school": "Black Magic",
         "type": "BLK", "element": "Fire"},
        {"id": 2, "name": "Meteor", "effects": "Three random attacks (2.00 each)", "type": "BLK"},
    ]), encoding="utf-8")
    (tmp_path / "statuses" / "haste.json").write_text(json.dumps({"id": 10, "name": "Haste"}), encoding="utf-8")
    return tmp_path


def test_load_directory(content_dir):
    index = load_content(content_dir)
    assert index.get_ability(1).element == ["Fire"]
    assert index.find_ability("Meteor").id == 2
    assert index.find_ability("Ultima") is None
    assert index.status_table["Haste"].id == 10
    assert index.get_status(10).name == "Haste"


def test_load_single_file(tmp_path):
    path = tmp_path / "content.json"
    path.write_text(json.dumps({
        "abilities": [{"id": 1, "name": "Blaze", "effects": "Single attack (5.00)"}],
        "statuses": [{"id": 10, "name": "Haste"}],
    }), encoding="utf-8")
    index = load_content(path)
    assert list(index.abilities) == [1]
    assert list(index.status_table) == ["Haste"]


def test_duplicate_ids_rejected(content_dir):
    (content_dir / "abilities" / "more.json").write_text(json.dumps({"id": 1, "name": "Blaze Again"}),
                                                         encoding="utf-8")
    with pytest.raises(RuntimeError):
        load_content(content_dir)


def test_invalid_record_rejected(content_dir):
    (content_dir / "abilities" / "bad.json").write_text(json.dumps({"id": 3, "name": "Bad", "school": "Cooking"}),
                                                        encoding="utf-8")
    with pytest.raises(ValidationError):
        load_content(content_dir)


def test_missing_directories_are_empty(tmp_path):
    index = load_content(tmp_path)
    assert index.abilities == {} and index.status_table == {}
