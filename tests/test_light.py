import pytest

from custom_components.govee_lan_sync.light import to_govee_brightness, to_ha_brightness


@pytest.mark.parametrize(("govee", "ha"), [(0, 0), (50, 128), (100, 255)])
def test_to_ha_brightness(govee, ha):
    assert to_ha_brightness(govee) == ha


@pytest.mark.parametrize(("ha", "govee"), [(0, 1), (1, 1), (128, 50), (255, 100)])
def test_to_govee_brightness(ha, govee):
    assert to_govee_brightness(ha) == govee
