"""
===============================================================================
APPLICATION LAYER
===============================================================================

Use cases live in `usecases/` subpackages; import them from there.
===============================================================================
"""
