import json

from WrapSettings import WrapSettings, load_settings


def test_missing_file_gives_defaults(tmp_path, monkeypatch):
    for k in ("WRAP_PREVIEW_DPI", "WRAP_EXPORT_DPI", "WRAP_DEBOUNCE_MS"):
        monkeypatch.delenv(k, raising=False)
    assert load_settings(tmp_path / "settings.json") == WrapSettings()


def test_file_values_validated(tmp_path, monkeypatch):
    monkeypatch.delenv("WRAP_PREVIEW_DPI", raising=False)
    monkeypatch.delenv("WRAP_EXPORT_DPI", raising=False)
    monkeypatch.delenv("WRAP_DEBOUNCE_MS", raising=False)

    p = tmp_path / "settings.json"
    p.write_text(
        json.dumps(
            {
                "dpi": {"preview": 96, "export": 100000},
                "wrap": {"border_width_inches": 1.0, "border_color": "nope", "default_size": "12x12"},
                "preview": {"debounce_ms": "fast"},
            }
        ),
        encoding="utf-8",
    )

    s = load_settings(p)
    assert s.preview_dpi == 96
    assert s.export_dpi == 300  # out of range -> default
    assert s.border_width_inches == 1.0
    assert s.border_color == "#000000"
    assert s.default_size == "12x12"
    assert s.debounce_ms == 300


def test_corrupt_file_falls_back(tmp_path):
    p = tmp_path / "settings.json"
    p.write_text("{not json", encoding="utf-8")
    assert load_settings(p).export_dpi == WrapSettings().export_dpi


def test_env_overrides_are_clamped(tmp_path, monkeypatch):
    monkeypatch.setenv("WRAP_PREVIEW_DPI", "5")
    monkeypatch.setenv("WRAP_EXPORT_DPI", "600")
    monkeypatch.setenv("WRAP_DEBOUNCE_MS", "abc")

    s = load_settings(tmp_path / "missing.json")
    assert s.preview_dpi == 18
    assert s.export_dpi == 600
    assert s.debounce_ms == 300
