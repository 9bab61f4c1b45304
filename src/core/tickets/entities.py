"""
Entidades do Domínio de Tickets.

Este módulo define as entidades de domínio que encapsulam
as regras do ciclo de vida de um ticket.

Entidades:
- TicketEntity: Agregado principal do domínio
- TicketStatus: Estados possíveis de um ticket
- PedidoFechamento: Pedido de fechamento pendente (fechamento em duas fases)
- Participante: Identidade vinculada ao ticket com um papel
- TenantConfig: Configurações do tenant relevantes ao ciclo de vida

Regras de Negócio Encapsuladas:
- Transições de status: ABERTO → FECHADO, FECHADO → ABERTO (reabrir)
- Assumir/liberar é ortogonal ao status
- Um único atendente por vez
- Fechar ticket já fechado é idempotente
- Pedido de fechamento é um token único, comparado e limpo atomicamente
- Canal vinculado nunca é trocado por outro
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional
import uuid

from src.core.shared.exceptions import (
    ValidationError,
    EntityNotFoundError,
    ConflictError,
)


MOTIVO_FECHAMENTO_AUTOMATICO = "Fechado automaticamente por falta de resposta ao pedido de fechamento"


def _agora() -> datetime:
    return datetime.now(timezone.utc)


class TicketStatus(Enum):
    """
    Estados possíveis de um ticket.

    Fluxo de Estados:
        ABERTO → FECHADO
        FECHADO → ABERTO (reabrir)

    "Assumido" é um sub-estado de ABERTO (atendente definido) e
    "fechamento pendente" é a presença de um PedidoFechamento.
    """

    ABERTO = "OPEN"
    FECHADO = "CLOSED"

    @classmethod
    def from_string(cls, value: str) -> "TicketStatus":
        """
        Converte string para enum.

        Aceita o nome ("ABERTO") ou o valor ("OPEN"), sem diferenciar
        maiúsculas.

        Raises:
            ValueError: Se valor inválido
        """
        try:
            return cls[value.upper()]
        except KeyError:
            pass

        for status in cls:
            if status.value.lower() == value.lower():
                return status

        raise ValueError(f"Status inválido: {value}")


class PapelParticipante(Enum):
    """Papel de uma identidade no ticket."""

    ABERTOR = "opener"
    ATENDENTE = "claimant"
    PARTICIPANTE = "participant"

    @classmethod
    def from_string(cls, value: str) -> "PapelParticipante":
        for papel in cls:
            if value and (papel.value == value.lower() or papel.name == value.upper()):
                return papel
        raise ValidationError(f"Papel inválido: {value}", field="papel")


@dataclass(frozen=True)
class Participante:
    identidade_id: str
    papel: PapelParticipante


@dataclass(frozen=True)
class PedidoFechamento:
    """
    Pedido de fechamento pendente.

    Existe apenas entre a solicitação e a aprovação, negação, fechamento
    ou expiração. O `id` funciona como token: o timer de fechamento
    automático só age se o token ainda for o mesmo.
    """

    id: str
    solicitado_por_id: str
    motivo: Optional[str] = None
    fechamento_automatico_em: Optional[datetime] = None
    criado_em: datetime = field(default_factory=_agora)

    @staticmethod
    def gerar_id() -> str:
        return f"cr_{uuid.uuid4().hex}"


@dataclass(frozen=True)
class TenantConfig:
    """
    Configurações do tenant usadas pelo ciclo de vida.

    Attributes:
        limite_tickets_por_usuario: Máximo de tickets abertos por usuário (0 = sem limite)
        categoria_arquivo_id: Categoria para onde canais fechados são movidos
    """

    tenant_id: str
    owner_id: Optional[str] = None
    limite_tickets_por_usuario: int = 0
    categoria_arquivo_id: Optional[str] = None


@dataclass
class TicketEntity:
    """
    Entidade de Domínio: Ticket.

    Agregado principal do domínio. Todas as mudanças de status passam
    pelos métodos desta classe; nunca por escrita direta de campos.

    Invariantes:
    - Exatamente um abertor durante toda a vida do ticket
    - No máximo um atendente por vez
    - Ticket fechado não aceita assumir/liberar/pedido de fechamento
    - Canal, uma vez vinculado, não é trocado

    Attributes:
        id: Identificador único (UUID)
        tenant_id: Tenant (servidor) dono do ticket
        numero: Sequência monotônica por tenant
        status: Estado atual do ticket
        aberto_por_id: Identidade que abriu o ticket
        assumido_por_id: Atendente atual (None se não assumido)
        painel_id: Painel/categoria de origem
        canal_id: Canal externo no chat (criado após a linha, na maioria dos fluxos)
        assunto: Assunto informado na abertura
        metadados: Dados livres (respostas de formulário, etc)
        fechado_em / fechado_por_id / motivo_fechamento: Dados do fechamento
        excluir_de_fechamento_automatico: Ignora timers de fechamento automático
        pedido_fechamento: Pedido pendente, se houver
        participantes: Identidades vinculadas (conjunto)
        versao: Contador de concorrência otimista (controlado pelo repositório)

    Example:
        ticket = TicketEntity.criar(tenant_id="g1", numero=7, aberto_por_id="u1")
        ticket.assumir("staff1")
        ticket.fechar("staff1", motivo="Resolvido")
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    tenant_id: str = ""
    numero: int = 0

    status: TicketStatus = field(default=TicketStatus.ABERTO)

    aberto_por_id: str = ""
    assumido_por_id: Optional[str] = None
    painel_id: Optional[str] = None
    canal_id: Optional[str] = None

    assunto: Optional[str] = None
    metadados: Dict[str, Any] = field(default_factory=dict)

    criado_em: datetime = field(default_factory=_agora)
    atualizado_em: datetime = field(default_factory=_agora)
    fechado_em: Optional[datetime] = None
    fechado_por_id: Optional[str] = None
    motivo_fechamento: Optional[str] = None

    excluir_de_fechamento_automatico: bool = False
    pedido_fechamento: Optional[PedidoFechamento] = None
    participantes: List[Participante] = field(default_factory=list)

    versao: int = 0

    ASSUNTO_MAX_LENGTH: ClassVar[int] = 100
    MOTIVO_MAX_LENGTH: ClassVar[int] = 500

    @classmethod
    def criar(
        cls,
        tenant_id: str,
        numero: int,
        aberto_por_id: str,
        canal_id: Optional[str] = None,
        painel_id: Optional[str] = None,
        assunto: Optional[str] = None,
        metadados: Optional[Dict[str, Any]] = None,
        excluir_de_fechamento_automatico: bool = False,
    ) -> "TicketEntity":
        """
        Factory method para criar ticket com validações.

        O abertor entra automaticamente como participante.

        Raises:
            ValidationError: Se dados de entrada inválidos
        """
        cls.validar_criacao(tenant_id, aberto_por_id, assunto)

        if numero < 1:
            raise ValidationError("Número do ticket deve ser positivo", field="numero")

        ticket = cls(
            tenant_id=tenant_id,
            numero=numero,
            aberto_por_id=aberto_por_id,
            canal_id=canal_id or None,
            painel_id=painel_id or None,
            assunto=assunto.strip() if assunto else None,
            metadados=dict(metadados or {}),
            excluir_de_fechamento_automatico=excluir_de_fechamento_automatico,
            status=TicketStatus.ABERTO,
        )
        ticket.participantes.append(Participante(aberto_por_id, PapelParticipante.ABERTOR))
        return ticket

    @classmethod
    def validar_criacao(cls, tenant_id: str, aberto_por_id: str, assunto: Optional[str]) -> None:
        """Validações de entrada, executadas antes de alocar número."""
        if not tenant_id:
            raise ValidationError("Tenant é obrigatório", field="tenant_id")

        if not aberto_por_id:
            raise ValidationError("Abertor é obrigatório", field="aberto_por_id")

        if assunto and len(assunto.strip()) > cls.ASSUNTO_MAX_LENGTH:
            raise ValidationError(
                f"Assunto deve ter no máximo {cls.ASSUNTO_MAX_LENGTH} caracteres",
                field="assunto"
            )

    @classmethod
    def _validar_motivo(cls, motivo: Optional[str]) -> None:
        if motivo and len(motivo) > cls.MOTIVO_MAX_LENGTH:
            raise ValidationError(
                f"Motivo deve ter no máximo {cls.MOTIVO_MAX_LENGTH} caracteres",
                field="motivo"
            )

    def _exigir_aberto(self, acao: str) -> None:
        if self.status == TicketStatus.FECHADO:
            raise ConflictError(
                f"Não é possível {acao} um ticket fechado",
                rule="ticket_fechado"
            )

    def assumir(self, atendente_id: str) -> bool:
        """
        Define o atendente do ticket.

        Returns:
            True se houve mudança; False se o mesmo atendente já assumiu

        Raises:
            ValidationError: Se atendente_id vazio
            ConflictError: Se fechado ou assumido por outra pessoa
        """
        if not atendente_id:
            raise ValidationError("ID do atendente é obrigatório", field="atendente_id")

        self._exigir_aberto("assumir")

        if self.assumido_por_id == atendente_id:
            return False

        if self.assumido_por_id:
            raise ConflictError(
                "Ticket já foi assumido por outro atendente",
                rule="ticket_ja_assumido"
            )

        self.assumido_por_id = atendente_id
        self.adicionar_participante(atendente_id, PapelParticipante.ATENDENTE)
        self._atualizar_timestamp()
        return True

    def liberar(self) -> str:
        """
        Remove o atendente atual.

        Returns:
            ID do atendente que foi liberado

        Raises:
            ConflictError: Se fechado ou não assumido
        """
        self._exigir_aberto("liberar")

        if not self.assumido_por_id:
            raise ConflictError("Ticket não está assumido", rule="ticket_nao_assumido")

        anterior = self.assumido_por_id
        self.assumido_por_id = None
        self.remover_participante(anterior, PapelParticipante.ATENDENTE)
        self._atualizar_timestamp()
        return anterior

    def fechar(self, fechado_por_id: str, motivo: Optional[str] = None) -> bool:
        """
        Fecha o ticket, descartando qualquer pedido de fechamento.

        Returns:
            True se fechou; False se já estava fechado (idempotente)
        """
        if self.status == TicketStatus.FECHADO:
            return False

        if not fechado_por_id:
            raise ValidationError("Responsável pelo fechamento é obrigatório", field="fechado_por_id")

        self._validar_motivo(motivo)

        self.status = TicketStatus.FECHADO
        self.fechado_em = _agora()
        self.fechado_por_id = fechado_por_id
        self.motivo_fechamento = motivo or None
        self.pedido_fechamento = None
        self._atualizar_timestamp()
        return True

    def solicitar_fechamento(
        self,
        solicitado_por_id: str,
        motivo: Optional[str] = None,
        horas_fechamento_automatico: Optional[float] = None,
    ) -> PedidoFechamento:
        """
        Cria pedido de fechamento a ser aprovado pelo abertor.

        O prazo de fechamento automático só é definido se informado e se
        o ticket não estiver excluído do fechamento automático.

        Raises:
            ConflictError: Se fechado ou se já há pedido pendente
            ValidationError: Se horas inválidas
        """
        self._exigir_aberto("solicitar fechamento de")

        if self.pedido_fechamento is not None:
            raise ConflictError(
                "Já existe um pedido de fechamento pendente para este ticket",
                rule="pedido_fechamento_pendente"
            )

        if horas_fechamento_automatico is not None and horas_fechamento_automatico <= 0:
            raise ValidationError(
                "Horas para fechamento automático devem ser positivas",
                field="horas_fechamento_automatico"
            )

        self._validar_motivo(motivo)

        agora = _agora()
        prazo = None
        if horas_fechamento_automatico and not self.excluir_de_fechamento_automatico:
            prazo = agora + timedelta(hours=horas_fechamento_automatico)

        self.pedido_fechamento = PedidoFechamento(
            id=PedidoFechamento.gerar_id(),
            solicitado_por_id=solicitado_por_id,
            motivo=motivo or None,
            fechamento_automatico_em=prazo,
            criado_em=agora,
        )
        self._atualizar_timestamp()
        return self.pedido_fechamento

    def descartar_pedido_fechamento(self, pedido_id: str) -> PedidoFechamento:
        """
        Remove o pedido pendente sem alterar o status (negação).

        Raises:
            EntityNotFoundError: Se o pedido não é o pendente
        """
        pedido = self.pedido_fechamento
        if pedido is None or pedido.id != pedido_id:
            raise EntityNotFoundError(
                f"Pedido de fechamento {pedido_id} não encontrado",
                entity_type="CloseRequest",
                entity_id=pedido_id,
            )

        self.pedido_fechamento = None
        self._atualizar_timestamp()
        return pedido

    def pode_fechar_automaticamente(self, pedido_id: str) -> bool:
        """
        Verificação feita quando o timer dispara.

        O ticket precisa continuar aberto, o pedido precisa ser o mesmo
        que agendou o timer e o ticket não pode ter sido excluído.
        """
        return (
            self.status == TicketStatus.ABERTO
            and self.pedido_fechamento is not None
            and self.pedido_fechamento.id == pedido_id
            and self.pedido_fechamento.fechamento_automatico_em is not None
            and not self.excluir_de_fechamento_automatico
        )

    def reabrir(self) -> None:
        """
        Reabre um ticket fechado.

        Regras:
        - Apenas tickets fechados podem ser reabertos
        - Dados de fechamento e atendente são limpos

        Raises:
            ConflictError: Se ticket não está fechado
        """
        if self.status != TicketStatus.FECHADO:
            raise ConflictError(
                "Apenas tickets fechados podem ser reabertos",
                rule="apenas_fechado_pode_reabrir"
            )

        if self.assumido_por_id:
            self.remover_participante(self.assumido_por_id, PapelParticipante.ATENDENTE)

        self.status = TicketStatus.ABERTO
        self.assumido_por_id = None
        self.fechado_em = None
        self.fechado_por_id = None
        self.motivo_fechamento = None
        self._atualizar_timestamp()

    def adicionar_participante(
        self,
        identidade_id: str,
        papel: PapelParticipante = PapelParticipante.PARTICIPANTE,
    ) -> bool:
        """Adiciona participante (idempotente). Retorna True se mudou."""
        if not identidade_id:
            raise ValidationError("Identidade é obrigatória", field="identidade_id")

        participante = Participante(identidade_id, papel)
        if participante in self.participantes:
            return False

        self.participantes.append(participante)
        self._atualizar_timestamp()
        return True

    def remover_participante(
        self,
        identidade_id: str,
        papel: Optional[PapelParticipante] = None,
    ) -> bool:
        """
        Remove participante (idempotente).

        Sem `papel`, remove a identidade de todos os papéis. Remover o
        abertor ou o atendente não é bloqueado aqui.
        """
        restantes = [
            p for p in self.participantes
            if not (p.identidade_id == identidade_id and (papel is None or p.papel == papel))
        ]
        if len(restantes) == len(self.participantes):
            return False

        self.participantes = restantes
        self._atualizar_timestamp()
        return True

    def vincular_canal(self, canal_id: str) -> bool:
        """
        Vincula o canal externo criado para o ticket.

        Raises:
            ConflictError: Se já vinculado a outro canal
        """
        if not canal_id:
            raise ValidationError("Canal é obrigatório", field="canal_id")

        if self.canal_id == canal_id:
            return False

        if self.canal_id:
            raise ConflictError(
                "Ticket já possui canal vinculado",
                rule="canal_imutavel"
            )

        self.canal_id = canal_id
        self._atualizar_timestamp()
        return True

    def definir_exclusao_fechamento_automatico(self, excluir: bool) -> Optional[PedidoFechamento]:
        """
        Liga/desliga a exclusão de fechamento automático.

        Returns:
            O pedido cujo prazo foi removido (timer a cancelar), se houver
        """
        self.excluir_de_fechamento_automatico = excluir
        self._atualizar_timestamp()

        pedido = self.pedido_fechamento
        if excluir and pedido is not None and pedido.fechamento_automatico_em is not None:
            self.pedido_fechamento = replace(pedido, fechamento_automatico_em=None)
            return pedido
        return None

    def _atualizar_timestamp(self) -> None:
        self.atualizado_em = _agora()

    @property
    def esta_aberto(self) -> bool:
        return self.status == TicketStatus.ABERTO

    @property
    def esta_fechado(self) -> bool:
        return self.status == TicketStatus.FECHADO

    @property
    def esta_assumido(self) -> bool:
        return self.status == TicketStatus.ABERTO and self.assumido_por_id is not None

    def eh_envolvido(self, identidade_id: str) -> bool:
        """Abertor, atendente ou participante."""
        return any(p.identidade_id == identidade_id for p in self.participantes) or identidade_id in (
            self.aberto_por_id,
            self.assumido_por_id,
        )

    def __str__(self) -> str:
        return f"Ticket #{self.numero} ({self.tenant_id}) [{self.status.value}]"
