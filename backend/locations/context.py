"""
Request-scoped tenant context: the current company and current location.

``SetCurrentCompanyMiddleware`` and ``SetCurrentLocationMiddleware`` fill
these slots from request headers and clear them once the response is built.
Storage is an ``asgiref`` Local, so every thread (WSGI) or task (ASGI)
sees only the values set for the request it is serving.
"""
from asgiref.local import Local

_tenant = Local()


class TenantSlot:
    """One request-local reference (a Company or a Location), last write wins"""

    def __init__(self, key):
        self.key = key

    def __repr__(self):
        return f"<TenantSlot {self.key}: {self.get()!r}>"

    def set(self, value):
        setattr(_tenant, self.key, value)

    def get(self):
        return getattr(_tenant, self.key, None)

    def id(self):
        value = self.get()
        return value.pk if value is not None else None

    def exists(self):
        return self.get() is not None

    def name(self):
        value = self.get()
        return value.name if value is not None else None

    def clear(self):
        try:
            delattr(_tenant, self.key)
        except AttributeError:
            pass


current_company = TenantSlot('company')
current_location = TenantSlot('location')


def current_company_id():
    return current_company.id()


def current_location_id():
    return current_location.id()
