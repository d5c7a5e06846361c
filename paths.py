import os
import sys
from pathlib import Path


def get_app_root() -> Path:
    if getattr(sys, "frozen", False):
        # PyInstaller
        return Path(sys._MEIPASS)
    else:
        # Modo desarrollo
        return Path(__file__).resolve().parent


def get_user_config_dir() -> Path:
    if os.name == "nt":
        appdata = os.environ.get("APPDATA") or os.environ.get("LOCALAPPDATA")
        if appdata:
            return Path(appdata) / "CanvasWrap"
    return Path.home() / ".canvas_wrap"
