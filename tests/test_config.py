import os
import tempfile

from vconlens.config import Config, load_config, save_config


def test_save_and_load_config_roundtrip():
    cfg = Config(base_dir="/srv/vcons")
    cfg.context["team"] = "support"
    cfg.source.kind = "convex"
    cfg.source.convex_url = "https://demo.convex.cloud"
    cfg.layout.charge_strength = -150.0
    cfg.assistant.fallback_seed = 42

    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "vconlens_config.yml")
        save_config(path, cfg)
        loaded = load_config(path)

    assert loaded.base_dir == "/srv/vcons"
    assert loaded.context.get("team") == "support"
    assert loaded.source.convex_url == "https://demo.convex.cloud"
    assert loaded.layout.charge_strength == -150.0
    assert loaded.assistant.fallback_seed == 42
    assert loaded.assistant.include_context is False


def test_partial_config_uses_defaults():
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "vconlens_config.yml")
        with open(path, "w", encoding="utf-8") as handle:
            handle.write("layout:\n  padding: 12\n")
        loaded = load_config(path)

    assert loaded.base_dir == ""
    assert loaded.source.page_size == 5
    params = loaded.layout.to_params()
    assert params.padding == 12
    assert params.collide_iterations == 3
    assert not hasattr(params, "frame_interval_ms")
