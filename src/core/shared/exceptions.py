"""
Exceções de Domínio do núcleo de Tickets.

Este módulo define exceções específicas do domínio que permitem
comunicar erros de forma clara e tipada entre as camadas.

Hierarquia:
    DomainException (base)
    ├── ValidationError (entrada malformada)
    ├── EntityNotFoundError (ticket/pedido de fechamento inexistente)
    ├── PermissionDeniedError (capacidade ausente)
    ├── BusinessRuleViolationError (regra de negócio violada)
    │   ├── ConflictError (estado já transicionado por operação concorrente)
    │   └── LimitExceededError (limite de tickets abertos por usuário)
    ├── NoContextError (contexto ambiente acessado fora de escopo)
    ├── PermissionLookupError (falha ao consultar papéis)
    └── TransientExternalError (falha transitória em API externa)
"""

from typing import List, Optional


class DomainException(Exception):
    """
    Exceção base para todos os erros de domínio.

    Todas as exceções específicas do domínio devem herdar desta classe.
    Isso permite capturar qualquer erro de domínio de forma genérica.

    Example:
        try:
            service.execute(dto)
        except DomainException as e:
            logger.error(f"Erro de domínio: {e}")
    """

    def __init__(self, message: str, code: str = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict:
        """Serializa exceção para dicionário (útil para APIs)."""
        return {
            "error": self.code,
            "message": self.message,
        }


class ValidationError(DomainException):
    """
    Erro de validação de dados de entrada.

    Lançada antes de tocar a máquina de estados, quando os dados
    fornecidos não atendem aos requisitos mínimos.

    Example:
        if len(assunto) > 100:
            raise ValidationError("Assunto muito longo", field="assunto")
    """

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"VALIDATION_ERROR_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        return result


class EntityNotFoundError(DomainException):
    """
    Entidade não encontrada no repositório.

    Também usada quando a entidade existe mas pertence a outro tenant:
    o chamador não deve conseguir distinguir os dois casos.
    """

    def __init__(self, message: str, entity_type: str = None, entity_id: str = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(message, "ENTITY_NOT_FOUND")

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.entity_type:
            result["entity_type"] = self.entity_type
        if self.entity_id:
            result["entity_id"] = self.entity_id
        return result


class PermissionDeniedError(DomainException):
    """
    Ator não possui a capacidade exigida.

    Attributes:
        capabilities: Nomes das capacidades ausentes (apenas diagnóstico)
    """

    def __init__(self, message: str, capabilities: Optional[List[str]] = None):
        self.capabilities = list(capabilities or [])
        super().__init__(message, "PERMISSION_DENIED")

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.capabilities:
            result["capabilities"] = self.capabilities
        return result


class BusinessRuleViolationError(DomainException):
    """
    Violação de regra de negócio.

    Lançada quando uma operação viola uma regra de negócio
    estabelecida no domínio.
    """

    def __init__(self, message: str, rule: str = None, code: str = "BUSINESS_RULE_VIOLATION"):
        self.rule = rule
        super().__init__(message, code)

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.rule:
            result["rule"] = self.rule
        return result


class ConflictError(BusinessRuleViolationError):
    """
    Estado já transicionado por outra operação.

    Cobre corrida de claim, ticket já assumido por outra pessoa,
    escrita concorrente detectada pelo compare-and-set de versão.

    Example:
        if ticket.assumido_por_id and ticket.assumido_por_id != atendente_id:
            raise ConflictError("Ticket já assumido", rule="ticket_ja_assumido")
    """

    def __init__(self, message: str, rule: str = None):
        super().__init__(message, rule=rule, code="CONFLICT")


class LimitExceededError(BusinessRuleViolationError):
    """Limite de tickets abertos por usuário atingido."""

    def __init__(self, message: str, limite: int = 0):
        self.limite = limite
        super().__init__(message, rule="limite_tickets_por_usuario", code="LIMIT_EXCEEDED")


class NoContextError(DomainException):
    """
    Contexto ambiente acessado fora de qualquer escopo.

    É erro de programação, nunca de usuário: a camada de transporte
    deve responder com erro interno genérico.
    """

    def __init__(self, context_type: str = "Actor"):
        self.context_type = context_type
        super().__init__(
            f"Nenhum contexto '{context_type}' ativo neste fluxo de execução",
            "NO_CONTEXT",
        )


class PermissionLookupError(DomainException):
    """
    Falha ao consultar o armazenamento de identidades/papéis.

    Nunca deve resultar em acesso concedido: quem captura assume
    máscara vazia.
    """

    def __init__(self, message: str):
        super().__init__(message, "PERMISSION_LOOKUP_FAILED")


class TransientExternalError(DomainException):
    """
    Falha transitória de colaborador externo (timeout, 429, 5xx).

    Efeitos diferidos fazem no máximo uma nova tentativa ao
    receber esta exceção.
    """

    def __init__(self, message: str, service: str = None):
        self.service = service
        super().__init__(message, "TRANSIENT_EXTERNAL_ERROR")
