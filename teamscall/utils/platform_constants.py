"""Platform detection constants."""

import sys

IS_WINDOWS = sys.platform == "win32"
IS_MACOS = sys.platform == "darwin"

# Observer join timeout on shutdown; FSEvents and ReadDirectoryChangesW
# threads can take noticeably longer to exit than inotify.
OBSERVER_JOIN_TIMEOUT = 5.0 if (IS_WINDOWS or IS_MACOS) else 1.0
