"""Example install hooks.

Copy this file to ``~/.verman/hooks/install/`` (or any directory listed in
VERMAN_HOOK_PATH, under an ``install`` subdirectory).

- ``verman install 3.12.4`` with VERMAN_DEBUG_BUILD=1 installs into
  ``versions/3.12.4-debug`` and passes ``--with-pydebug`` to the builder.
- After every install a line is appended to ``<root>/install.log``.
"""

import os
from datetime import datetime, timezone


def register(hooks):
    @hooks.resolve
    def debug_suffix(context):
        if os.environ.get("VERMAN_DEBUG_BUILD") and not context.version_name.endswith("-debug"):
            context.version_name = f"{context.version_name}-debug"

    @hooks.before
    def debug_configure_flags(context):
        if context.version_name.endswith("-debug"):
            flags = context.build_env.get("CONFIGURE_OPTS", os.environ.get("CONFIGURE_OPTS", ""))
            context.build_env["CONFIGURE_OPTS"] = f"{flags} --with-pydebug".strip()

    @hooks.after
    def record_install(context):
        stamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        line = f"{stamp} {context.version_name} {context.status.value}\n"
        with open(context.settings.root / "install.log", "a", encoding="utf-8") as f:
            f.write(line)
