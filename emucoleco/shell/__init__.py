# emucoleco shell
"""Host-side helpers: frame presentation and ROM services."""
