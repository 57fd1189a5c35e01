"""
Application error taxonomy.

Core modules raise these exceptions; main.py translates them into the JSON
envelope with the matching status code. Messages are user-facing.
"""

from fastapi import status


class AppError(Exception):
    """Base class for errors that map onto an HTTP status code."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Erreur serveur"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Non authentifié"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Accès non autorisé"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Ressource non trouvée"


class ProjectNotFound(NotFound):
    default_message = "Projet non trouvé"


class TaskNotFound(NotFound):
    default_message = "Tâche non trouvée"


class UserNotFound(NotFound):
    default_message = "Utilisateur non trouvé"


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Données invalides"


class InvalidAssignee(ValidationError):
    default_message = "L'utilisateur assigné doit être membre du projet"


class AlreadyMember(ValidationError):
    default_message = "Cet utilisateur est déjà membre du projet"


class CannotRemoveOwner(ValidationError):
    default_message = "Impossible de retirer le propriétaire du projet"


class EmailAlreadyRegistered(ValidationError):
    default_message = "Un utilisateur avec cet email existe déjà"
