from typing import List

from tv_control.exceptions import tv_control_exception


class PackageInstallException(tv_control_exception.TvControlException):

    def __init__(self, packages: List[str], message: str = None):
        self.packages = packages
        self.message = f"Failed to install packages: {', '.join(packages)}."
        if message:
            self.message = f"{self.message} {message}"
        super().__init__(self.message)
