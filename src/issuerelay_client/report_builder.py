"""
Helpers for assembling a Report from interactive input.

The queue itself only ever sees finished Report objects; these helpers cover
the bits the submitting side has to fill in (platform, quick-action notes,
screenshot payloads).
"""

from __future__ import annotations

import base64
import mimetypes
import re
import sys
from pathlib import Path
from typing import Optional

from .models import Platform, Report, type_label

_IOS_UA = re.compile(r"iPad|iPhone|iPod")
_ANDROID_UA = re.compile(r"Android")


def detect_platform(user_agent: Optional[str] = None) -> Platform:
  """
  Work out which platform a report is being submitted from.

  A user agent string, when given, decides. Otherwise the interpreter's
  own platform is used; anything that is not iOS or Android counts as web.
  """
  if user_agent is not None:
    if _IOS_UA.search(user_agent):
      return Platform.IOS
    if _ANDROID_UA.search(user_agent):
      return Platform.ANDROID
    return Platform.WEB

  if sys.platform == "ios":
    return Platform.IOS
  if sys.platform == "android":
    return Platform.ANDROID
  return Platform.WEB


def compose_message(message: str, note: Optional[str] = None) -> str:
  """Append a user note to a quick-action message."""
  note = (note or "").strip()
  if not note:
    return message
  return f"{message}. Note: {note}"


def encode_screenshot(path: Path) -> str:
  """Read an image file and return it as a base64 ``data:`` URL."""
  path = Path(path)
  mime, _ = mimetypes.guess_type(path.name)
  if not mime or not mime.startswith("image/"):
    raise ValueError(f"Not an image file: {path}")
  encoded = base64.b64encode(path.read_bytes()).decode("ascii")
  return f"data:{mime};base64,{encoded}"


def build_report(
  report_type: str,
  message: str = "",
  *,
  note: Optional[str] = None,
  app_version: str = "1.0.0",
  screenshot_path: Optional[Path] = None,
  user_agent: Optional[str] = None,
) -> Report:
  screenshot = encode_screenshot(screenshot_path) if screenshot_path else None
  return Report(
    type=report_type,
    message=compose_message(message if message.strip() else type_label(report_type), note),
    platform=detect_platform(user_agent),
    app_version=app_version,
    screenshot=screenshot,
  )
