import weakref


class Buffer:
    """One backend allocation of ``n_elements`` float32 slots.

    A Buffer is owned by exactly one Tensor; views borrow it through their
    owner. ``backend.free`` runs when the Buffer is garbage collected.
    """

    def __init__(self, backend, n_elements):
        self.backend = backend
        self.n_elements = int(n_elements)
        self.nbytes = self.n_elements * backend.itemsize
        self.handle = backend.allocate(self.nbytes)
        self._finalizer = weakref.finalize(self, backend.free, self.handle)

    @property
    def alive(self):
        return self._finalizer.alive

    def __repr__(self):
        return f"Buffer(backend={self.backend.name!r}, n_elements={self.n_elements})"
