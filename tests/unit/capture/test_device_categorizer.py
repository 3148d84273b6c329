import pytest

from capture.transformations.device_categorizer import browser_info, categorize_device
from shared.models import DeviceType

IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
IPAD = (
    "Mozilla/5.0 (iPad; CPU OS 16_6 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.6 Mobile/15E148 Safari/604.1"
)
EDGE = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.2210.91"
)
FIREFOX = "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"
CHROME_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36"
)


@pytest.mark.parametrize(
    "ua,expected",
    [
        (IPHONE, DeviceType.MOBILE),
        (IPAD, DeviceType.TABLET),
        (EDGE, DeviceType.DESKTOP),
        ("", DeviceType.DESKTOP),
        (None, DeviceType.DESKTOP),
    ],
)
def test_categorize_device(ua, expected):
    assert categorize_device(ua) == expected


@pytest.mark.parametrize(
    "ua,name,version,os_name",
    [
        (EDGE, "Edge", "120.0.2210.91", "Windows"),
        (FIREFOX, "Firefox", "121.0", "Linux"),
        (CHROME_MAC, "Chrome", "119.0.0.0", "macOS"),
        (IPHONE, "Safari", "17.0", "iOS"),
    ],
)
def test_browser_info(ua, name, version, os_name):
    info = browser_info(ua)
    assert (info.name, info.version, info.os) == (name, version, os_name)


def test_browser_info_unknown_agent():
    info = browser_info("curl/8.4.0")
    assert info.name is None and info.version is None and info.os is None
