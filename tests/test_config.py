import math
from pathlib import Path

import pytest

from rbfsweep.config import ErrorOptions, PhysicalParameters, SweepConfig, load_config
from rbfsweep.errors import ConfigurationError, InvalidModeError


def test_defaults_validate() -> None:
    cfg = SweepConfig().validate()
    assert cfg.kernel_name == "imq"
    assert cfg.physics.dipole_location == (0.0, 0.0, 0.6)
    assert SweepConfig(sol_type="mfs").kernel_name == "fundamental_3d"


@pytest.mark.parametrize(
    "changes, exc",
    [
        ({"bc_choice": 0}, InvalidModeError),
        ({"sol_type": "fem"}, InvalidModeError),
        ({"rbf": "tps"}, InvalidModeError),
        ({"int_point_dist": "sobol"}, InvalidModeError),
        ({"solver": "qr"}, InvalidModeError),
        ({"ep": 0.0}, ConfigurationError),
        ({"n_eval": 0}, ConfigurationError),
        ({"mfs_sphere": 0.9}, ConfigurationError),
        ({"mfs_frac": 1.5}, ConfigurationError),
        ({"workers": 0}, ConfigurationError),
        ({"boundary_fraction": 1.0}, ConfigurationError),
    ],
)
def test_invalid_settings(changes, exc) -> None:
    with pytest.raises(exc):
        SweepConfig().with_updates(**changes).validate()


def test_physics_validation() -> None:
    with pytest.raises(ConfigurationError):
        PhysicalParameters(dipole_location=(0.0, 0.0, 1.0)).validate()
    with pytest.raises(ConfigurationError):
        PhysicalParameters(conductivity=-1.0).validate()
    with pytest.raises(ConfigurationError):
        PhysicalParameters(dipole_moment=(1.0, 2.0))
    with pytest.raises(ConfigurationError):
        ErrorOptions(norm_ord=3).validate()


def test_load_config(tmp_path: Path) -> None:
    path = tmp_path / "sweep.toml"
    path.write_text(
        "\n".join(
            [
                "[physics]",
                "radius = 1.0",
                "dipole_location = [0.0, 0.0, 0.5]",
                "",
                "[solve]",
                "sol_type = \"kansa\"",
                "rbf = \"mq\"",
                "ep = 2.0",
                "bc_choice = 2",
                "",
                "[geometry]",
                "n_points = 500",
                "int_point_dist = \"even\"",
                "",
                "[sweep]",
                "n_eval = 11",
                "workers = 2",
                "",
                "[error]",
                "norm_ord = \"inf\"",
                "",
                "[output]",
                f"dir = \"{tmp_path / 'out'}\"",
            ]
        )
    )
    cfg, output = load_config(path)
    assert cfg.rbf == "mq"
    assert cfg.ep == 2.0
    assert cfg.bc_choice == 2
    assert cfg.n_points == 500
    assert cfg.n_eval == 11
    assert cfg.physics.dipole_location == (0.0, 0.0, 0.5)
    assert cfg.error.norm_ord == math.inf
    assert output["dir"] == str(tmp_path / "out")
    cfg.validate()


def test_load_config_errors(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_config(tmp_path / "missing.toml")

    bad = tmp_path / "bad.toml"
    bad.write_text("[solve]\nrbf = \n")
    with pytest.raises(ConfigurationError):
        load_config(bad)

    unknown = tmp_path / "unknown.toml"
    unknown.write_text("[solve]\nshape = 1.0\n")
    with pytest.raises(ConfigurationError):
        load_config(unknown)


def test_to_dict_roundtrips_fields() -> None:
    d = SweepConfig(ep=0.5).to_dict()
    assert d["ep"] == 0.5
    assert d["physics"]["radius"] == 1.0
    assert d["error"]["style"] == "relative"


def test_key_repeated_across_tables_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "dup.toml"
    path.write_text("[solve]\nep = 1.0\n\n[sweep]\nep = 2.0\n")
    with pytest.raises(ConfigurationError, match="ep"):
        load_config(path)
