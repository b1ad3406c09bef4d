"""Branch predictors, a branch target buffer and cache prefetchers for microarchitecture simulation."""

__version__ = "0.1.0"