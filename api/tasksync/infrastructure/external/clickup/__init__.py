"""
Integracion con la API REST v2 de ClickUp.

- client: cliente HTTP tipado, con rate limiting en cada llamada
- types: dataclasses de las respuestas (sin I/O, faciles de testear)
- url_resolution: URL/ID de usuario -> ID canonico de lista o carpeta
- signature: verificacion HMAC de los webhooks entrantes
"""
