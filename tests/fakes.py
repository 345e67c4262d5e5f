from tasktracker.errors import StoreUnavailable


class FlakyStore:
    """
    Entity store wrapper that fails one chosen call.

    Every attribute is delegated to the wrapped store; the ``on_call``-th call
    of ``method`` raises StoreUnavailable instead of reaching it. Later calls
    go through again, so compensations can still write.
    """

    def __init__(self, inner, *, method: str, on_call: int = 1) -> None:
        self.inner = inner
        self.method = method
        self.on_call = on_call
        self.calls = 0

    def __getattr__(self, name):
        attr = getattr(self.inner, name)
        if name != self.method:
            return attr

        def flaky(*args, **kwargs):
            self.calls += 1
            if self.calls == self.on_call:
                raise StoreUnavailable("Entity store unavailable", data="simulated outage")
            return attr(*args, **kwargs)

        return flaky
