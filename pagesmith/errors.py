"""Errors raised while generating and registering pages."""


class MaterializeError(RuntimeError):
    """Base class for page generation failures."""


class TemplateMalformed(MaterializeError):
    """Raised when the template lacks a closing head or body tag."""


class InvalidSlug(MaterializeError):
    """Raised when a slug is empty or uses characters outside ``[a-z0-9-]``."""


class TemplateUnavailable(MaterializeError):
    """Raised when the template document cannot be read."""


class PersistFailure(MaterializeError):
    """Raised when the generated document cannot be written to disk."""


class RegistryError(RuntimeError):
    """Base class for page registry failures."""


class SlugTaken(RegistryError):
    """Raised when registering a page whose slug is already in use."""


class PageNotFound(RegistryError):
    """Raised when the requested page is not registered."""
