"""Configuración y acceso a BD compartidos por los servicios."""
