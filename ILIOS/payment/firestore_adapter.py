from typing import Any, Dict, Optional, Protocol, Tuple

from google.cloud import firestore

# ------------------------------
# Collections
# ------------------------------
CAMPAIGNS = "campaigns"
TRANSACTIONS = "mtn_transactions"
REFUNDS = "mtn_refunds"
NOTIFICATIONS = "notifications"
USERS = "users"


class DocumentStore(Protocol):
    """What the payment services need from the document store."""

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]: ...

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None: ...

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None: ...

    def add(self, collection: str, data: Dict[str, Any]) -> str: ...

    def find_one(self, collection: str, field: str, value: Any) -> Optional[Tuple[str, Dict[str, Any]]]: ...

    def update_if(self, collection: str, doc_id: str, field: str, expected: Any, data: Dict[str, Any]) -> bool: ...


class FirestoreStore:
    def __init__(self, db: firestore.Client):
        self.db = db

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        doc = self.db.collection(collection).document(doc_id).get()
        if doc.exists:
            return doc.to_dict() or {}
        return None

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self.db.collection(collection).document(doc_id).set(data)

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self.db.collection(collection).document(doc_id).update(data)

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        _, ref = self.db.collection(collection).add(data)
        return ref.id

    def find_one(self, collection: str, field: str, value: Any) -> Optional[Tuple[str, Dict[str, Any]]]:
        docs = (
            self.db.collection(collection)
            .where(field, "==", value)
            .limit(1)
            .stream()
        )
        for doc in docs:
            return doc.id, doc.to_dict() or {}
        return None

    def update_if(self, collection: str, doc_id: str, field: str, expected: Any, data: Dict[str, Any]) -> bool:
        """
        Atomically apply `data` only while `field == expected`.
        Returns False (and writes nothing) when the document is missing or has moved on.
        """
        ref = self.db.collection(collection).document(doc_id)

        @firestore.transactional
        def txn_fn(transaction):
            snap = ref.get(transaction=transaction)
            if not snap.exists or (snap.to_dict() or {}).get(field) != expected:
                return False
            transaction.update(ref, data)
            return True

        return txn_fn(self.db.transaction())
