"""Compilers that turn extracted CSS sources into the linked stylesheets."""
