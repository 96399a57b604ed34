"""
Backend-agnostic contracts of leafdnn: tensor, backend, layer and solver
protocols, device descriptors and the error types.
"""
