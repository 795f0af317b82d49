"""
Domain exception types, one per HTTP outcome the chat-bulletin API reports.
"""
from __future__ import annotations

from cogc_planning.core.exceptions.base import ProjectError


class ConfigurationError(ProjectError):
    """Invalid or missing configuration."""

    default_code = "CONFIGURATION_ERROR"
    default_http_status = 500


class ValidationError(ProjectError):
    """Malformed turn request. Raised before the session is touched."""

    default_code = "VALIDATION_ERROR"
    default_http_status = 400
    default_user_message = "La requête est invalide."


class NotFoundError(ProjectError):
    """Requested resource not found."""

    default_code = "NOT_FOUND"
    default_http_status = 404
    default_user_message = "Élément introuvable."


class UnauthorizedError(ProjectError):
    """Authentication required or failed."""

    default_code = "UNAUTHORIZED"
    default_http_status = 401
    default_user_message = "Accès refusé."


class ConflictError(ProjectError):
    """Resource state conflict (e.g. duplicate, version mismatch)."""

    default_code = "CONFLICT"
    default_http_status = 409


class ConflictStateError(ConflictError):
    """
    Session transition refused: the session is terminal, the transition is
    not in the table, or another turn advanced it first (version mismatch).
    Callers refetch the session and retry.
    """

    default_code = "CONFLICT_STATE"
    default_user_message = (
        "Cette conversation a été modifiée entre-temps ou est terminée. "
        "Rechargez-la avant de continuer."
    )


class ExternalServiceError(ProjectError):
    """External service (OCR, LLM, DB) failed after retries."""

    default_code = "EXTERNAL_SERVICE_ERROR"
    default_http_status = 502
    default_user_message = (
        "Le service d'analyse est momentanément indisponible. "
        "Votre import est conservé, réessayez dans quelques instants."
    )


class ExtractionError(ExternalServiceError):
    """OCR answered but produced no usable text."""

    default_code = "EXTRACTION_ERROR"
    default_http_status = 422
    default_user_message = (
        "Aucun texte n'a pu être extrait du PDF. Vérifiez qu'il s'agit bien d'un bulletin lisible."
    )


class ParseError(ProjectError):
    """Structuring adapter returned JSON that does not match the expected schema."""

    default_code = "PARSE_ERROR"
    default_http_status = 422
    default_user_message = (
        "Je n'ai pas réussi à interpréter le bulletin avec certitude. "
        "Merci de vérifier les services ci-dessous."
    )


class AgentNotFoundError(NotFoundError):
    """The calendar owner of the session is not in the agent directory."""

    default_code = "AGENT_NOT_FOUND"
    default_user_message = (
        "L'agent propriétaire du planning est introuvable. L'import ne peut pas continuer."
    )


class RateLimitError(ProjectError):
    """Rate limit exceeded."""

    default_code = "RATE_LIMIT"
    default_http_status = 429
    default_user_message = "Trop de messages en peu de temps. Patientez un instant avant de réessayer."
