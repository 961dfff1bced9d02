from enum import Enum


class RequestKind(str, Enum):
    # EXACTLY 3 reviewable request kinds
    registration = "registration"
    transfer = "transfer"
    document = "document"


class RequestKeyField(str, Enum):
    # natural keys a request can be addressed by
    request_id = "request_id"
    property_id = "property_id"
    pk = "pk"
