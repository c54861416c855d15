from __future__ import annotations

import textwrap
from importlib import metadata

APP_NAME = "polyflow"
POLYFLOW_LOGO = textwrap.dedent(r"""
                 __        ______
    ____  ____  / /_  __  / __/ /___ _      __
   / __ \/ __ \/ / / / / / /_/ / __ \ | /| / /
  / /_/ / /_/ / / /_/ / / __/ / /_/ / |/ |/ /
 / .___/\____/_/\__, / /_/ /_/\____/|__/|__/
/_/            /____/
""")

try:
    __version__ = metadata.version(APP_NAME)
except metadata.PackageNotFoundError:
    __version__ = "dev"
