"""Infrastructure layer — rule/field documents and the copy-on-write store.

This layer depends on stdlib, third-party libs (ruamel.yaml), and domain
models. It must never import from services, commands, or output.
The service layer bridges between domain logic and infrastructure.
"""
