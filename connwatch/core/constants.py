import os
import platform
import tempfile
from pathlib import Path

# Load environment variables from .env file
from dotenv import load_dotenv

load_dotenv(Path.cwd() / ".env")

APP_NAME = "connwatch"

# Notifier defaults
DEFAULT_BACKEND = os.getenv("CONNWATCH_BACKEND", "interface")
DEFAULT_POLL_INTERVAL = float(os.getenv("CONNWATCH_POLL_INTERVAL", "2.0"))
DEFAULT_BUFFER_SIZE = int(os.getenv("CONNWATCH_BUFFER_SIZE", "16"))
DEFAULT_LOG_LEVEL = os.getenv("CONNWATCH_LOG_LEVEL", "warning")

# VPN and tunnel adapters, not uplinks
TUN_INTERFACE_KEYWORDS = ["tun", "tap", "utun", "wg", "sing"]

# Temporary directory (cross-platform)
if platform.system() == "Windows":
    TMPDIR = os.path.join(tempfile.gettempdir(), APP_NAME)
elif platform.system() == "Darwin":
    TMPDIR = os.path.join(os.path.expanduser("~/Library/Caches"), APP_NAME)
else:
    TMPDIR = os.path.join(os.environ.get("TMPDIR", "/tmp"), APP_NAME)

LOG_FILE = os.path.join(TMPDIR, "connwatch.log")
