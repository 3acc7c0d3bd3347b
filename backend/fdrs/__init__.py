"""FDRS backend: faculty document resource sharing service."""
