from .parameters import LoaderParameters

__all__ = ["LoaderParameters"]
