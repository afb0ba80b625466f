from tests.data.etcdpki.certs import NOW


class FakeClock:
    def __init__(self, now=NOW):
        self.current = now

    def now(self):
        return self.current
