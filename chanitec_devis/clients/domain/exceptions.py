"""Exceptions spécifiques au domaine Client."""


class ClientDomainException(Exception):
    """Classe de base pour les exceptions du domaine Client."""
    code = "client_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ClientNotFoundException(ClientDomainException):
    """Levée lorsqu'un client n'est pas trouvé (par ID ou par nom)."""
    code = "not_found"

    def __init__(self, client_ref: str):
        super().__init__(f"Client '{client_ref}' non trouvé.")
        self.client_ref = client_ref


class ClientCreationFailedException(ClientDomainException):
    """Levée lorsque la création d'un client, de son site ou de ses splits échoue."""
    code = "creation_failed"
