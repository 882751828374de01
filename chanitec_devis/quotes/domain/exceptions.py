"""Exceptions spécifiques au domaine Quote."""

from typing import Optional


class QuoteDomainException(Exception):
    """Classe de base pour les exceptions du domaine Quote."""
    code = "quote_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class InvalidInputException(QuoteDomainException):
    """Levée lorsqu'une valeur numérique (taux, quantité, prix) est invalide."""
    code = "invalid_input"

    def __init__(self, field: str, value, detail: str = "doit être positif ou nul"):
        super().__init__(f"Valeur invalide pour '{field}' ({value}): {detail}.")
        self.field = field
        self.value = value


class InvalidMarginRateException(InvalidInputException):
    """Levée lorsque le taux de marge sort de l'intervalle [0, 1)."""
    code = "invalid_margin_rate"

    def __init__(self, value):
        super().__init__("margin_rate", value, "le taux de marge doit être compris dans [0, 1)")


class QuoteNotFoundException(QuoteDomainException):
    """Levée lorsqu'un devis spécifique n'est pas trouvé."""
    code = "not_found"

    def __init__(self, quote_id: str):
        super().__init__(f"Devis avec ID {quote_id} non trouvé.")
        self.quote_id = quote_id


class QuoteItemNotFoundException(QuoteDomainException):
    """Levée lorsqu'une ligne (fourniture ou main d'oeuvre) n'existe pas dans le devis courant."""
    code = "not_found"

    def __init__(self, item_id: str):
        super().__init__(f"Ligne de devis avec ID {item_id} non trouvée.")
        self.item_id = item_id


class PersistenceFailureException(QuoteDomainException):
    """Levée en cas d'erreur réseau ou serveur lors d'un appel au backend."""
    code = "persistence_failure"

    def __init__(self, detail: str, status_code: Optional[int] = None):
        message = f"Erreur backend{f' (HTTP {status_code})' if status_code else ''}: {detail}"
        super().__init__(message)
        self.detail = detail
        self.status_code = status_code


class ValidationFailureException(QuoteDomainException):
    """Levée lorsqu'un champ requis manque avant enregistrement ou confirmation."""
    code = "validation_failure"


class QuoteNotInitializedException(QuoteDomainException):
    """Levée lorsqu'une action est envoyée alors qu'aucun devis n'est actif."""
    code = "not_initialized"

    def __init__(self, message: str = "Aucun devis actif."):
        super().__init__(message)
