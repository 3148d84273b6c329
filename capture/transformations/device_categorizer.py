import re

from shared.models import BrowserInfo, DeviceType

_TABLET_RE = re.compile(r"tablet|ipad|playbook|silk", re.IGNORECASE)
_MOBILE_RE = re.compile(
    r"mobile|iphone|ipod|android|blackberry|opera mini|windows ce|palm|"
    r"smartphone|iemobile",
    re.IGNORECASE,
)

# Order matters: Edge and Chrome both claim Safari, Edge also claims Chrome.
_BROWSERS = (
    ("Edge", re.compile(r"Edg(?:e|A|iOS)?/([\d.]+)")),
    ("Firefox", re.compile(r"Firefox/([\d.]+)")),
    ("Chrome", re.compile(r"Chrome/([\d.]+)")),
    ("Safari", re.compile(r"Version/([\d.]+).*Safari/")),
)

_OPERATING_SYSTEMS = (
    ("Windows", "Windows"),
    ("iPhone", "iOS"),
    ("iPad", "iOS"),
    ("Android", "Android"),
    ("Mac", "macOS"),
    ("Linux", "Linux"),
)


def categorize_device(user_agent: str | None) -> DeviceType:
    ua = user_agent or ""
    if _TABLET_RE.search(ua):
        return DeviceType.TABLET
    if _MOBILE_RE.search(ua):
        return DeviceType.MOBILE
    return DeviceType.DESKTOP


def browser_info(user_agent: str | None) -> BrowserInfo:
    ua = user_agent or ""
    name = version = os_name = None
    for candidate, pattern in _BROWSERS:
        match = pattern.search(ua)
        if match:
            name, version = candidate, match.group(1)
            break
    for marker, label in _OPERATING_SYSTEMS:
        if marker in ua:
            os_name = label
            break
    return BrowserInfo(name=name, version=version, os=os_name)
