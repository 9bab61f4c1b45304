"""
Domain Events - Comunicação Assíncrona entre Domínios.

Este módulo define a infraestrutura base para Domain Events,
permitindo que efeitos externos (canal no chat, webhook, analytics)
sejam desacoplados da transação que os originou.

Características:
- Auto-geração de ID e timestamp
- Serializáveis para o outbox e para transporte via Celery
- Rastreáveis via aggregate_id
- Carregam apenas identificadores, nunca objetos vivos

Pattern: Outbox
    - Eventos são gravados na mesma transação da mudança
    - Publicados após commit do UoW
    - Handlers processam e marcam a linha como entregue
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict
import uuid


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DomainEvent(ABC):
    """
    Classe base abstrata para Domain Events.

    Um Domain Event representa algo significativo que aconteceu
    no domínio e que pode ser relevante para outras partes do sistema.

    Características:
    - Nomeados no passado (TicketCriado, não CriarTicket)
    - Representam fatos históricos
    - Contêm os ids necessários para os efeitos diferidos

    Attributes:
        event_id: Identificador único do evento
        aggregate_id: ID do agregado que gerou o evento
        occurred_at: Momento em que o evento ocorreu
        version: Versão do schema do evento (para evolução)

    Class Attributes:
        event_name: Nome público (webhook/analytics), ex: "ticket.claimed"
    """

    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    aggregate_id: str = ""
    occurred_at: datetime = field(default_factory=utcnow)
    version: int = 1

    event_name: ClassVar[str] = ""

    def __post_init__(self):
        """Validação após inicialização."""
        if not self.aggregate_id:
            raise ValueError("aggregate_id é obrigatório")

    @property
    @abstractmethod
    def aggregate_type(self) -> str:
        """Nome do tipo do agregado (ex: "Ticket")."""
        ...

    @property
    def event_type(self) -> str:
        """Tipo do evento (nome da classe), usado para roteamento."""
        return self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        """
        Serializa evento para dicionário.

        Útil para:
        - Persistência no outbox
        - Envio via Celery (JSON)
        - Logging estruturado
        """
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "event_name": self.event_name,
            "aggregate_id": self.aggregate_id,
            "aggregate_type": self.aggregate_type,
            "occurred_at": self.occurred_at.isoformat(),
            "version": self.version,
            "data": self._get_event_data(),
        }

    def _get_event_data(self) -> Dict[str, Any]:
        """Campos específicos do evento (tudo exceto os da base)."""
        base_fields = {"event_id", "aggregate_id", "occurred_at", "version"}
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name not in base_fields
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DomainEvent":
        """
        Reconstrói evento a partir de dicionário.

        Factory method para deserialização de eventos persistidos
        ou recebidos por um worker.
        """
        event_data = data.get("data", {})
        return cls(
            event_id=data.get("event_id", str(uuid.uuid4())),
            aggregate_id=data["aggregate_id"],
            occurred_at=datetime.fromisoformat(data["occurred_at"]),
            version=data.get("version", 1),
            **event_data,
        )

    def __repr__(self) -> str:
        return (
            f"{self.event_type}("
            f"event_id={self.event_id[:8]}..., "
            f"aggregate_id={self.aggregate_id}, "
            f"occurred_at={self.occurred_at.isoformat()}"
            f")"
        )
