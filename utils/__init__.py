# utils/__init__.py
# Pattern engine pieces shared by inkmark.py: codec, mask, tiling, luminance.
