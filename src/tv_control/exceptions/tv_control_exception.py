class TvControlException(Exception):
    """Base class for errors raised by the TV control installer and dispatcher."""

    def __init__(self, message: str = None):
        self.message = message or self.__class__.__name__
        super().__init__(self.message)
