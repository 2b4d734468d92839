"""agmanager - settings synchronization core for the desktop shell"""

__version__ = "1.0.0"
__description__ = "Debounced, serialized persistence of the desktop shell settings"

__all__ = ["main", "ConfigSyncApp", "__version__"]


def __getattr__(name: str):
    """Lazy import so ``agmanager.core`` can be used without the app wiring.

    Importing the application pulls in the Sentry SDK and reads the
    environment; the core modules need neither.
    """
    if name == "ConfigSyncApp":
        from .main import ConfigSyncApp

        return ConfigSyncApp
    if name == "main":
        from .main import main

        return main
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
