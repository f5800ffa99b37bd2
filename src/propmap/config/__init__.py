from .settings import PropMapSettings, require_backend_url, settings

__all__ = ["PropMapSettings", "require_backend_url", "settings"]
