"""
Concrete data-source adapters (Census API, PUMS files, etc.).

Important: keep this package import side-effect free.
Do not import adapter modules here.
"""
__all__: list[str] = []
