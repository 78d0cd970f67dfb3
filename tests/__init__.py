"""Test package for rinklink."""
