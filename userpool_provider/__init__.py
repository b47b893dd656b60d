from userpool_provider.version import __version__  # noqa: F401
