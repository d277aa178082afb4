from typing import Optional


class AutorerunError(Exception):
    pass


class CollaboratorError(AutorerunError):
    status_code: Optional[int]
    url: Optional[str]

    def __init__(self, *args, **kwargs):
        self.status_code = kwargs.pop("status_code", None)
        self.url = kwargs.pop("url", None)
        super().__init__(*args, **kwargs)


class NotFound(CollaboratorError):
    pass


class Unauthorized(CollaboratorError):
    pass


class TransportError(CollaboratorError):
    pass


class MalformedResponse(CollaboratorError):
    pass


def error_for_status(status_code: int, message: str, url: str) -> CollaboratorError:
    if status_code == 404:
        cls = NotFound
    elif status_code in (401, 403):
        cls = Unauthorized
    else:
        cls = TransportError
    return cls(message, status_code=status_code, url=url)


class InvalidConfig(AutorerunError):
    raw_config: str
    source: str

    def __init__(self, *args, **kwargs):
        self.raw_config = kwargs.pop("raw_config")
        self.source = kwargs.pop("source")
        super().__init__(*args, **kwargs)
