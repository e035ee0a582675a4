""" failure type exceptions
    these exceptions will mark test as failure
"""


class MyBaseFailure(Exception):
    pass


class ValidationFailure(MyBaseFailure):
    """assertion on a response value failed.

    carries the addressed path together with expected and actual values,
    so that the failure can be diagnosed without re-running the case.
    """

    def __init__(self, path, expected, actual, message=""):
        self.path = path
        self.expected = expected
        self.actual = actual
        self.message = message
        detail = f"path: {path}, expected: {expected!r}, actual: {actual!r}"
        super(ValidationFailure, self).__init__(
            f"{message}\n{detail}" if message else detail
        )


""" error type exceptions
    these exceptions will mark test as error
"""


class MyBaseError(Exception):
    pass


class FileFormatError(MyBaseError):
    pass


class ApiDefinitionFormatError(FileFormatError):
    pass


class ParamsError(MyBaseError):
    pass


class NotFoundError(MyBaseError):
    pass


class FileNotFound(FileNotFoundError, NotFoundError):
    pass


class TokenError(MyBaseError):
    pass
