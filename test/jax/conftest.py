def pytest_ignore_collect(collection_path, config):
    """Skip the JAX backend tests if jax or equinox are not installed."""
    try:
        import equinox  # noqa: F401
        import jax  # noqa: F401
    except ImportError:
        return True
    return False
