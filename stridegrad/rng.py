import numpy as np

_DEFAULT_GENERATOR = np.random.default_rng()


def default_generator():
    return _DEFAULT_GENERATOR


def manual_seed(seed):
    """Reseed the default generator used by the random tensor factories."""
    global _DEFAULT_GENERATOR
    _DEFAULT_GENERATOR = np.random.default_rng(seed)
    return _DEFAULT_GENERATOR


def resolve(generator=None):
    # An explicitly passed generator wins over the process default.
    if generator is None:
        return _DEFAULT_GENERATOR
    if isinstance(generator, np.random.Generator):
        return generator
    return np.random.default_rng(generator)
