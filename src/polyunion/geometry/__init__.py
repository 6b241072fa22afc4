"""
Union engines for the two coordinate domains.

``planar`` and ``spherical`` provide the primitives strategies and the
engine entry points; ``overlay`` and ``result`` hold the shared subdivision
and result assembly.
"""
