from tv_control.exceptions import tv_control_exception


class DownloadException(tv_control_exception.TvControlException):

    def __init__(self, url: str, message: str = None):
        self.url = url
        self.message = f"Could not download video from {url}."
        if message:
            self.message = f"{self.message} {message}"
        super().__init__(self.message)
