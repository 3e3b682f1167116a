"""Exception types raised by the datastore and derivation layers."""


class RosterError(Exception):
    pass


class DocumentNotFound(RosterError):
    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"No document '{doc_id}' in collection '{collection}'")
        self.collection = collection
        self.doc_id = doc_id


class UnknownCollection(RosterError):
    pass


class MissingReferenceError(RosterError):
    """A record points at an athlete, meet or person that is not loaded."""
