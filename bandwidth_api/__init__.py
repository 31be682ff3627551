"""Servicio de ingesta de ancho de banda y liveness de sitios."""
