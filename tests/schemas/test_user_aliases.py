import pytest
from pydantic import ValidationError

from burstfuse.schemas import CLIConfig, ExposureControl, Robustness, UserConfig


@pytest.mark.parametrize("text", ["Curve0EV", "curve0ev", "CURVE0EV", " curve0EV "])
def test_exposure_control_case_insensitive(text):
    assert UserConfig(EXPOSURE_CONTROL=text).exposure_control is ExposureControl.CURVE_0EV


@pytest.mark.parametrize("text", ["high", "HIGH", "High"])
def test_robustness_case_insensitive(text):
    assert UserConfig(ROBUSTNESS=text).robustness is Robustness.HIGH


def test_unknown_exposure_control_rejected():
    with pytest.raises(ValidationError):
        UserConfig(EXPOSURE_CONTROL="Curve2EV")


def test_field_names_and_aliases_both_accepted():
    assert UserConfig(tile_size=8).tile_size == 8
    assert UserConfig(TILE_SIZE=8).tile_size == 8


def test_unknown_user_keys_ignored():
    user = UserConfig.model_validate({"TILE_SIZE": 8, "LEGACY_KEY": "value"})
    assert user.tile_size == 8


def test_log_level_uppercased():
    assert UserConfig(LOG_LEVEL="debug").log_level == "DEBUG"


def test_flat_aliases_map_to_sections():
    user = UserConfig(SEARCH_RADIUS=3, MAX_WORKERS=2, UNIFORM_EXPOSURE=False)
    overrides = user.to_internal_overrides()

    assert overrides["aligner"] == {"coarse_search_radius": 3, "max_workers": 2}
    assert overrides["reader"] == {"max_workers": 2}
    assert overrides["burst"] == {"uniform_exposure": False}


def test_nested_section_wins_over_flat_alias():
    user = UserConfig(TILE_SIZE=8, aligner={"tile_size": 32, "fine_metric": "L2"})
    overrides = user.to_internal_overrides()
    assert overrides["aligner"]["tile_size"] == 32
    assert overrides["aligner"]["fine_metric"] == "l2"


def test_empty_user_config_has_no_overrides():
    assert UserConfig().to_internal_overrides() == {}


def test_cli_overrides_only_given_values():
    cli = CLIConfig(robustness="low", reference_index=1)
    assert cli.to_internal_overrides() == {
        "merger": {"robustness": Robustness.LOW},
        "burst": {"reference_index": 1},
    }


def test_cli_rejects_unknown_fields():
    with pytest.raises(ValidationError):
        CLIConfig(tile_size=8)
