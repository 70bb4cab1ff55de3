import importlib
import json

import config


def test_missing_config_file_gives_no_overrides(tmp_path):
    assert config.load_config(str(tmp_path / 'absent.json')) == {}


def test_config_json_overrides_grid_bounds(tmp_path, monkeypatch):
    labels = ["7:00 AM", "7:30 AM", "8:00 AM"]
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({'time_labels': labels, 'max_slots': 20, 'default_rooms': ['A1']}))
    monkeypatch.setenv('TIMETABLE_CONFIG', str(path))
    try:
        importlib.reload(config)
        assert config.TIME_LABELS == labels
        assert config.MAX_SLOTS == 20
        assert config.DEFAULT_ROOMS == ['A1']
    finally:
        monkeypatch.delenv('TIMETABLE_CONFIG')
        importlib.reload(config)
    assert len(config.TIME_LABELS) == 25
    assert config.MAX_SLOTS == 28
