from . import assets, jobs

__all__ = ["assets", "jobs"]
