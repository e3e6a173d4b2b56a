from __future__ import annotations

from pathlib import Path

import pytest

from pagenoter.configs import get_config, update_dict, validate_config_item
from pagenoter.core.session import PropertyNames


@pytest.fixture(autouse=True)
def _isolated_home(monkeypatch, tmp_path: Path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


def test_defaults_are_written_to_user_config(_isolated_home: Path) -> None:
    config = get_config()

    assert config["note_title_template"] == "Notes for page $p$"
    assert config["store_relative_paths"] == "ask"
    assert config["property_names"] == {"document": "DOC_FILE", "note_page": "DOC_NOTE_PAGE"}
    assert config["shortcuts"]["insert_note"] == "I"
    assert (_isolated_home / ".pagenoterrc").is_file()


def test_yaml_string_and_file_overrides(tmp_path: Path) -> None:
    config = get_config("{note_title_template: 'p. $p$', property_names: {document: PDF}}")
    assert config["note_title_template"] == "p. $p$"
    assert config["property_names"] == {"document": "PDF", "note_page": "DOC_NOTE_PAGE"}

    config_file = tmp_path / "custom.yaml"
    config_file.write_text("store_relative_paths: never\n", encoding="utf-8")
    config = get_config(str(config_file))
    assert config["store_relative_paths"] == "never"


def test_argument_overrides_win(tmp_path: Path) -> None:
    config = get_config(
        "{store_relative_paths: never}",
        {"store_relative_paths": "always", "initial_zoom_percent": 200},
    )
    assert config["store_relative_paths"] == "always"
    assert config["initial_zoom_percent"] == 200


def test_empty_config_file_keeps_defaults(tmp_path: Path) -> None:
    config_file = tmp_path / "empty.yaml"
    config_file.write_text("", encoding="utf-8")
    assert get_config(str(config_file))["store_relative_paths"] == "ask"


def test_unknown_keys_are_skipped() -> None:
    target = {"a": 1, "nested": {"b": 2}}
    update_dict(target, {"a": 3, "zzz": 4, "nested": {"b": 5, "c": 6}})
    assert target == {"a": 3, "nested": {"b": 5}}


@pytest.mark.parametrize(
    "key, value",
    [
        ("note_title_template", "Notes"),
        ("store_relative_paths", "sometimes"),
        ("document", "two words"),
        ("note_page", ""),
        ("initial_zoom_percent", 1000),
    ],
)
def test_invalid_values_are_rejected(key, value) -> None:
    with pytest.raises(ValueError):
        validate_config_item(key, value)


def test_invalid_template_in_yaml_raises() -> None:
    with pytest.raises(ValueError):
        get_config("{note_title_template: 'no placeholder'}")


def test_property_names_from_config_are_upper_cased() -> None:
    names = PropertyNames.from_config(
        get_config("{property_names: {document: pdf_file, note_page: page}}")
    )
    assert names == PropertyNames(document="PDF_FILE", note_page="PAGE")
    assert PropertyNames.from_config(None) == PropertyNames()
