import pytest

from dbw_control.config import (
    LATENCY_SECONDS,
    POLY_DEGREE,
    VEHICLE_MASS,
    WHEELBASE_LF,
    ControllerConfig,
    load_config,
)


def test_defaults():
    config = load_config()
    assert config.vehicle_mass == VEHICLE_MASS == 1736.35
    assert config.latency == LATENCY_SECONDS == 0.1
    assert config.wheelbase == WHEELBASE_LF == 2.67
    assert config.poly_degree == POLY_DEGREE == 3
    assert config.loop_rate_hz == 50.0
    assert config.period == pytest.approx(0.02)


def test_yaml_overlay(tmp_path):
    path = tmp_path / "dbw.yaml"
    path.write_text("latency: 0.2\nloop_rate_hz: 20\ninvert_steering: false\n")

    config = load_config(path)

    assert config.latency == 0.2
    assert config.loop_rate_hz == 20
    assert config.invert_steering is False
    assert config.wheelbase == WHEELBASE_LF


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(path) == ControllerConfig()


def test_missing_file_gives_defaults(tmp_path, caplog):
    config = load_config(tmp_path / "nope.yaml")
    assert config == ControllerConfig()
    assert "not found" in caplog.text


def test_unknown_keys_rejected(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("latencyy: 0.2\n")
    with pytest.raises(ValueError, match="latencyy"):
        load_config(path)


def test_non_mapping_rejected(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ValueError):
        load_config(path)


@pytest.mark.parametrize(
    "field,value",
    [("loop_rate_hz", 0.0), ("latency", -0.1), ("wheelbase", 0.0), ("poly_degree", 0), ("waypoint_window", 0)],
)
def test_invalid_values_rejected(field, value):
    with pytest.raises(ValueError):
        ControllerConfig(**{field: value})


def test_to_dict_lists_every_field():
    data = ControllerConfig().to_dict()
    assert data["vehicle_mass"] == 1736.35
    assert set(data) >= {"latency", "wheelbase", "poly_degree", "loop_rate_hz", "ws_uri"}


def test_window_too_small_for_fit_rejected():
    with pytest.raises(ValueError, match="waypoint_window"):
        ControllerConfig(waypoint_window=4)
    with pytest.raises(ValueError):
        ControllerConfig(poly_degree=5, waypoint_window=6)


def test_window_with_fit_margin_accepted():
    assert ControllerConfig(poly_degree=2, waypoint_window=4).waypoint_window == 4
    assert ControllerConfig(waypoint_window=5).waypoint_window == 5


def test_window_too_small_in_yaml_rejected(tmp_path):
    path = tmp_path / "small.yaml"
    path.write_text("waypoint_window: 3\n")
    with pytest.raises(ValueError):
        load_config(path)


def test_malformed_yaml_rejected_as_value_error(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("latency: [0.1\n")
    with pytest.raises(ValueError, match="not valid YAML"):
        load_config(path)


def test_wrongly_typed_value_rejected_as_value_error(tmp_path):
    path = tmp_path / "typed.yaml"
    path.write_text('latency: "0.1"\n')
    with pytest.raises(ValueError, match="Invalid value type"):
        load_config(path)
