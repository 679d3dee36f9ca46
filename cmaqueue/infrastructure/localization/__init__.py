"""Localization package.

Provides the field localizer that turns flat field maps into the
locale-keyed envelope expected by the remote content API.
"""

from cmaqueue.infrastructure.localization.field_localizer import FieldLocalizer, localize

__all__ = ['FieldLocalizer', 'localize']
