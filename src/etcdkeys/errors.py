class InvalidArgumentError(ValueError):
    """Raised locally when the shape of a caller-supplied argument is not understood. Nothing is sent to etcd."""


class EtcdError(Exception):
    def __init__(self, code, cause, index, message):
        """Generic Etcd exception.

        :type code: int|None
        :type cause: str|None
        :type index: int|None
        :type message: str|None
        """
        self.code = code
        self.cause = cause
        self.index = index
        self.message = message
        super(EtcdError, self).__init__(cause or message)

    @classmethod
    def from_raw(cls, raw_error):
        """Convert raw dictionary error to the matching EtcdError subclass.

        :type raw_error: dict
        :rtype: EtcdError
        """
        code = raw_error.get('errorCode', -1)
        actual_cls = _ERROR_CLASSES.get(code)
        if actual_cls is None:
            actual_cls = InvalidFieldError if 200 <= code < 300 else cls

        return actual_cls(
            code=code, cause=raw_error.get('cause'), index=raw_error.get('index'), message=raw_error.get('message')
        )


class KeyNotFoundError(EtcdError):
    pass


class PreconditionFailedError(EtcdError):
    """A prevExist, prevValue or prevIndex condition did not hold on the store."""


class CompareFailedError(PreconditionFailedError):
    pass


TestFailedError = CompareFailedError


class NodeExistsError(PreconditionFailedError):
    pass


class NotFileError(EtcdError):
    pass


class NotDirError(EtcdError):
    pass


class RootReadOnlyError(EtcdError):
    pass


class DirNotEmptyError(EtcdError):
    pass


class InvalidFieldError(EtcdError):
    pass


class EventIndexClearedError(EtcdError):
    pass


class RequestError(EtcdError):
    def __init__(self, message):
        super(RequestError, self).__init__(None, None, None, message)


class Timeout(RequestError):
    def __init__(self, message=None):
        super(Timeout, self).__init__(message)


_ERROR_CLASSES = {
    100: KeyNotFoundError,
    101: CompareFailedError,
    102: NotFileError,
    104: NotDirError,
    105: NodeExistsError,
    107: RootReadOnlyError,
    108: DirNotEmptyError,
    401: EventIndexClearedError,
}
