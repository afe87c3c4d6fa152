from tv_control.exceptions import tv_control_exception


class ConfigInvalidException(tv_control_exception.TvControlException):

    def __init__(self, config_path, message: str = None):
        self.config_path = config_path
        self.message = f"Invalid device configuration at {config_path}."
        if message:
            self.message = f"{self.message} {message}"
        super().__init__(self.message)
