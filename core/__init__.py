"""core/ -- Kernel: configuration and error kinds. No imports from other packages."""
