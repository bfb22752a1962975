"""Test package for ctxmind."""
