class PupError(Exception):
    pass


class FormatError(PupError, TypeError):
    pass


class UnsupportedFeatureError(PupError, NotImplementedError):
    pass


class NotFoundError(PupError, KeyError):
    def __str__(self):
        return str(self.args[0]) if self.args else ""


class DecryptError(PupError, ValueError):
    pass


class DecompressError(PupError, ValueError):
    pass


class SignatureError(PupError):
    pass
