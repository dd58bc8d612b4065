"""HTTP surface for tablehand."""
