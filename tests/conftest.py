import sys
import types
from pathlib import Path

# Ensure custom_components is importable when running tests directly
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _ensure_stub_package(name: str, path: Path) -> None:
    if name in sys.modules:
        return
    module = types.ModuleType(name)
    module.__path__ = [str(path)]
    sys.modules[name] = module


# Import submodules without running the integration's setup module.
_ensure_stub_package("custom_components", ROOT / "custom_components")
_ensure_stub_package("custom_components.led_controller", ROOT / "custom_components" / "led_controller")
_ensure_stub_package(
    "custom_components.led_controller.lib", ROOT / "custom_components" / "led_controller" / "lib"
)
