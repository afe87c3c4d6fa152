# TV Control - Common Utilities
#
# Shared helpers used by both the installer and the dispatcher.
# Import directly from the specific module, not from this __init__.py.
#
# Example:
#   from tv_control.common.paths import get_project_paths
#   from tv_control.common.cec import CecClient
