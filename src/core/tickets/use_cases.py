"""
Use Cases (Application Services) do Domínio de Tickets.

Este módulo contém os casos de uso da aplicação, que orquestram
a lógica de negócio coordenando entidades, repositórios e eventos.

Use Cases implementados:
- CriarTicketService: Abre novo ticket (lista negra, limite, numeração)
- AssumirTicketService / LiberarTicketService: Atendente do ticket
- FecharTicketService: Fecha ticket (idempotente)
- SolicitarFechamentoService: Pedido de fechamento com timer opcional
- AprovarFechamentoService / NegarFechamentoService: Resposta ao pedido
- FecharAutomaticamenteService: Disparo do timer
- ReabrirTicketService: Reabre ticket fechado
- AdicionarParticipanteService / RemoverParticipanteService
- VincularCanalService: Registra o canal criado para o ticket
- DefinirExclusaoFechamentoAutomaticoService
- ObterTicketService / ListarTicketsService: Consultas

Responsabilidades dos Use Cases:
- Autorizar o ator corrente (contexto ambiente)
- Coordenar entidades dentro de uma transação (via UoW)
- Registrar eventos e callbacks pós-commit
- Retornar DTOs de saída

Autorização:
    Toda operação lê o ator de `src.core.shared.context`. Atores de
    outro tenant recebem EntityNotFoundError, nunca PermissionDenied,
    para não revelar a existência do ticket.
"""

from functools import partial
from typing import List, Optional
import logging

from src.core.permissions.flags import PermissionFlags
from src.core.shared.context import Actor, SystemActor, current, require_capability
from src.core.shared.interfaces import UnitOfWork
from src.core.shared.transaction import in_transaction
from src.core.shared.exceptions import (
    ConflictError,
    EntityNotFoundError,
    LimitExceededError,
    PermissionDeniedError,
    ValidationError,
)

from .ports import AutoCloseScheduler, TenantRepository, TicketRepository
from .entities import (
    MOTIVO_FECHAMENTO_AUTOMATICO,
    PapelParticipante,
    TicketEntity,
    TicketStatus,
)
from .dtos import (
    CriarTicketInputDTO,
    AssumirTicketInputDTO,
    LiberarTicketInputDTO,
    FecharTicketInputDTO,
    SolicitarFechamentoInputDTO,
    ResponderFechamentoInputDTO,
    ReabrirTicketInputDTO,
    ParticipanteInputDTO,
    VincularCanalInputDTO,
    DefinirExclusaoFechamentoAutomaticoInputDTO,
    ListarTicketsQueryDTO,
    TicketOutputDTO,
    PedidoFechamentoOutputDTO,
)
from .events import (
    TicketCriadoEvent,
    TicketAssumidoEvent,
    TicketLiberadoEvent,
    TicketFechadoEvent,
    TicketReabertoEvent,
    FechamentoSolicitadoEvent,
    FechamentoNegadoEvent,
    ParticipanteAdicionadoEvent,
    ParticipanteRemovidoEvent,
    CanalVinculadoEvent,
)

logger = logging.getLogger(__name__)


def _mesmo_tenant(ator: Actor, tenant_id: str) -> bool:
    return isinstance(ator, SystemActor) or ator.tenant_id == tenant_id


def _autorizar(ator: Actor, envolvido: bool, flag: PermissionFlags) -> None:
    """Libera se o ator é parte envolvida; senão exige a capacidade."""
    if not envolvido:
        require_capability(flag)


class _TicketService:
    """Base com carregamento de ticket respeitando o tenant do ator."""

    def __init__(self, ticket_repo: TicketRepository, uow: UnitOfWork):
        self.ticket_repo = ticket_repo
        self.uow = uow

    def _obter_ticket(self, ator: Actor, ticket_id: str, for_update: bool = True) -> TicketEntity:
        """
        Busca ticket visível para o ator.

        Raises:
            EntityNotFoundError: Se não existe ou é de outro tenant
        """
        ticket = self.ticket_repo.get_by_id(ticket_id, for_update=for_update)

        if not ticket or not _mesmo_tenant(ator, ticket.tenant_id):
            raise EntityNotFoundError(
                f"Ticket {ticket_id} não encontrado",
                entity_type="Ticket",
                entity_id=ticket_id
            )

        return ticket

    def _obter_por_pedido(self, ator: Actor, pedido_id: str) -> TicketEntity:
        ticket = self.ticket_repo.get_by_close_request_id(pedido_id, for_update=True)

        if not ticket or not _mesmo_tenant(ator, ticket.tenant_id):
            raise EntityNotFoundError(
                f"Pedido de fechamento {pedido_id} não encontrado",
                entity_type="CloseRequest",
                entity_id=pedido_id
            )

        return ticket


class CriarTicketService:
    """
    Use Case: Abrir um novo ticket.

    Fluxo:
    1. Validar dados de entrada
    2. Verificar lista negra do tenant
    3. Alocar número (serializa criações no tenant)
    4. Verificar limite de tickets abertos do usuário
    5. Criar e persistir entidade
    6. Disparar evento TicketCriado

    Example:
        service = CriarTicketService(ticket_repo, tenant_repo, uow)
        output = provide(actor, service.execute, CriarTicketInputDTO(tenant_id="g1"))
        print(output.numero)
    """

    def __init__(self, ticket_repo: TicketRepository, tenant_repo: TenantRepository, uow: UnitOfWork):
        """
        Inicializa service com dependências injetadas.

        Args:
            ticket_repo: Repositório para persistência
            tenant_repo: Configuração e numeração do tenant
            uow: Unit of Work para transação atômica
        """
        self.ticket_repo = ticket_repo
        self.tenant_repo = tenant_repo
        self.uow = uow

    def execute(self, input_dto: CriarTicketInputDTO) -> TicketOutputDTO:
        """
        Executa criação de ticket em transação atômica.

        Raises:
            ValidationError: Se dados inválidos
            PermissionDeniedError: Se usuário na lista negra ou de outro tenant
            LimitExceededError: Se atingiu o limite de tickets abertos
            EntityNotFoundError: Se tenant não configurado
        """
        ator = current()
        aberto_por_id = input_dto.aberto_por_id or ator.identidade_id

        if not _mesmo_tenant(ator, input_dto.tenant_id):
            raise PermissionDeniedError("Ator não pertence a este tenant")

        TicketEntity.validar_criacao(input_dto.tenant_id, aberto_por_id, input_dto.assunto)

        with self.uow:
            config = self.tenant_repo.get_config(input_dto.tenant_id)
            if config is None:
                raise EntityNotFoundError(
                    f"Tenant {input_dto.tenant_id} não encontrado",
                    entity_type="Tenant",
                    entity_id=input_dto.tenant_id
                )

            if self.tenant_repo.is_blacklisted(input_dto.tenant_id, aberto_por_id):
                raise PermissionDeniedError("Você está bloqueado de abrir tickets neste servidor")

            numero = self.tenant_repo.next_ticket_number(input_dto.tenant_id)

            limite = config.limite_tickets_por_usuario
            if limite > 0:
                abertos = self.ticket_repo.count_open_by_opener(input_dto.tenant_id, aberto_por_id)
                if abertos >= limite:
                    raise LimitExceededError(
                        f"Você já possui {abertos} ticket(s) aberto(s); o limite é {limite}",
                        limite=limite
                    )

            ticket = TicketEntity.criar(
                tenant_id=input_dto.tenant_id,
                numero=numero,
                aberto_por_id=aberto_por_id,
                canal_id=input_dto.canal_id,
                painel_id=input_dto.painel_id,
                assunto=input_dto.assunto,
                metadados=input_dto.metadados,
                excluir_de_fechamento_automatico=input_dto.excluir_de_fechamento_automatico,
            )

            self.ticket_repo.save(ticket)

            self.uow.publish_event(
                TicketCriadoEvent(
                    aggregate_id=ticket.id,
                    tenant_id=ticket.tenant_id,
                    numero=ticket.numero,
                    aberto_por_id=ticket.aberto_por_id,
                    canal_id=ticket.canal_id,
                    painel_id=ticket.painel_id,
                    assunto=ticket.assunto,
                )
            )

        return TicketOutputDTO.from_entity(ticket)


class AssumirTicketService(_TicketService):
    """
    Use Case: Atendente assume o ticket.

    Exige TICKET_CLAIM. Assumir de novo pelo mesmo atendente é
    sucesso sem efeito (nenhum evento).
    """

    def execute(self, input_dto: AssumirTicketInputDTO) -> TicketOutputDTO:
        """
        Raises:
            PermissionDeniedError: Sem TICKET_CLAIM
            EntityNotFoundError: Se ticket não existe
            ConflictError: Se fechado ou assumido por outro
        """
        with self.uow:
            ator = require_capability(PermissionFlags.TICKET_CLAIM)
            ticket = self._obter_ticket(ator, input_dto.ticket_id)

            atendente_id = input_dto.atendente_id or ator.identidade_id
            if not ticket.assumir(atendente_id):
                logger.info(f"Ticket {ticket.id} já assumido por {atendente_id}; nada a fazer")
                return TicketOutputDTO.from_entity(ticket)

            self.ticket_repo.save(ticket)

            self.uow.publish_event(
                TicketAssumidoEvent(
                    aggregate_id=ticket.id,
                    tenant_id=ticket.tenant_id,
                    atendente_id=atendente_id,
                    canal_id=ticket.canal_id,
                )
            )

        return TicketOutputDTO.from_entity(ticket)


class LiberarTicketService(_TicketService):
    """Use Case: Remove o atendente (o próprio atendente ou quem tem TICKET_CLAIM)."""

    def execute(self, input_dto: LiberarTicketInputDTO) -> TicketOutputDTO:
        with self.uow:
            ator = current()
            ticket = self._obter_ticket(ator, input_dto.ticket_id)

            _autorizar(
                ator,
                ticket.assumido_por_id is not None and ticket.assumido_por_id == ator.identidade_id,
                PermissionFlags.TICKET_CLAIM,
            )

            anterior = ticket.liberar()
            self.ticket_repo.save(ticket)

            self.uow.publish_event(
                TicketLiberadoEvent(
                    aggregate_id=ticket.id,
                    tenant_id=ticket.tenant_id,
                    atendente_anterior_id=anterior,
                    liberado_por_id=ator.identidade_id,
                    canal_id=ticket.canal_id,
                )
            )

        return TicketOutputDTO.from_entity(ticket)


class FecharTicketService(_TicketService):
    """
    Use Case: Fechar ticket.

    Fluxo:
    1. Buscar ticket (bloqueado para escrita)
    2. Autorizar: abertor, atendente ou TICKET_CLOSE_ANY
    3. Se já fechado, retornar sucesso sem efeitos
    4. Fechar, cancelar timer pendente (após commit) e disparar evento

    Dois fechamentos concorrentes: o perdedor recebe ConflictError do
    repositório, relê o ticket e, se já estiver fechado, retorna sucesso.
    """

    def __init__(self, ticket_repo: TicketRepository, uow: UnitOfWork, scheduler: AutoCloseScheduler):
        super().__init__(ticket_repo, uow)
        self.scheduler = scheduler

    def execute(self, input_dto: FecharTicketInputDTO) -> TicketOutputDTO:
        """
        Executa fechamento.

        Raises:
            EntityNotFoundError: Se ticket não existe
            PermissionDeniedError: Se ator não pode fechar
        """
        try:
            return self._executar(input_dto)
        except ConflictError:
            # Dentro de uma transação maior o conflito pertence a quem a abriu
            if in_transaction():
                raise
            ticket = self.ticket_repo.get_by_id(input_dto.ticket_id)
            if ticket is None or ticket.status != TicketStatus.FECHADO:
                raise
            logger.info(f"Ticket {ticket.id} fechado por operação concorrente")
            return TicketOutputDTO.from_entity(ticket)

    def _executar(self, input_dto: FecharTicketInputDTO) -> TicketOutputDTO:
        with self.uow:
            ator = current()
            ticket = self._obter_ticket(ator, input_dto.ticket_id)

            _autorizar(
                ator,
                ator.identidade_id in (ticket.aberto_por_id, ticket.assumido_por_id),
                PermissionFlags.TICKET_CLOSE_ANY,
            )

            if ticket.esta_fechado:
                logger.info(f"Ticket {ticket.id} já está fechado")
                return TicketOutputDTO.from_entity(ticket)

            self.fechar(
                ticket,
                fechado_por_id=input_dto.fechado_por_id or ator.identidade_id,
                motivo=input_dto.motivo,
                excluir_canal=input_dto.excluir_canal,
                notificar_abertor=input_dto.notificar_abertor,
            )

        return TicketOutputDTO.from_entity(ticket)

    def fechar(
        self,
        ticket: TicketEntity,
        fechado_por_id: str,
        motivo: Optional[str] = None,
        excluir_canal: bool = False,
        notificar_abertor: bool = True,
        automatico: bool = False,
    ) -> bool:
        """
        Transição de fechamento sem autorização.

        Usado também pela aprovação e pelo fechamento automático, que
        compõem o fechamento na própria transação (o UoW entra no
        escopo ativo).
        """
        with self.uow:
            pedido = ticket.pedido_fechamento
            if not ticket.fechar(fechado_por_id, motivo):
                return False

            self.ticket_repo.save(ticket)

            if pedido and pedido.fechamento_automatico_em and not automatico:
                self.uow.after_commit(
                    partial(self.scheduler.cancel, ticket.id, pedido.id),
                    "cancelar-fechamento-automatico",
                )

            self.uow.publish_event(
                TicketFechadoEvent(
                    aggregate_id=ticket.id,
                    tenant_id=ticket.tenant_id,
                    numero=ticket.numero,
                    fechado_por_id=fechado_por_id,
                    aberto_por_id=ticket.aberto_por_id,
                    motivo=ticket.motivo_fechamento,
                    canal_id=ticket.canal_id,
                    automatico=automatico,
                    excluir_canal=excluir_canal,
                    notificar_abertor=notificar_abertor,
                )
            )
        return True


class SolicitarFechamentoService(_TicketService):
    """
    Use Case: Pedir ao abertor que confirme o fechamento.

    Qualquer ator do tenant pode solicitar. Com prazo definido, o timer
    é agendado somente após o commit.
    """

    def __init__(self, ticket_repo: TicketRepository, uow: UnitOfWork, scheduler: AutoCloseScheduler):
        super().__init__(ticket_repo, uow)
        self.scheduler = scheduler

    def execute(self, input_dto: SolicitarFechamentoInputDTO) -> PedidoFechamentoOutputDTO:
        """
        Raises:
            ConflictError: Se fechado ou com pedido pendente
        """
        with self.uow:
            ator = current()
            ticket = self._obter_ticket(ator, input_dto.ticket_id)

            pedido = ticket.solicitar_fechamento(
                solicitado_por_id=input_dto.solicitado_por_id or ator.identidade_id,
                motivo=input_dto.motivo,
                horas_fechamento_automatico=input_dto.horas_fechamento_automatico,
            )
            self.ticket_repo.save(ticket)

            if pedido.fechamento_automatico_em:
                self.uow.after_commit(
                    partial(self.scheduler.schedule, ticket.id, pedido.id, pedido.fechamento_automatico_em),
                    "agendar-fechamento-automatico",
                )

            self.uow.publish_event(
                FechamentoSolicitadoEvent(
                    aggregate_id=ticket.id,
                    tenant_id=ticket.tenant_id,
                    pedido_id=pedido.id,
                    solicitado_por_id=pedido.solicitado_por_id,
                    motivo=pedido.motivo,
                    fechamento_automatico_em=(
                        pedido.fechamento_automatico_em.isoformat()
                        if pedido.fechamento_automatico_em else None
                    ),
                    canal_id=ticket.canal_id,
                )
            )

        return PedidoFechamentoOutputDTO.from_pedido(ticket.id, pedido)


class AprovarFechamentoService(_TicketService):
    """
    Use Case: Abertor aprova o pedido de fechamento.

    O fechamento roda na mesma transação da aprovação: se falhar, o
    pedido continua pendente.
    """

    def __init__(self, ticket_repo: TicketRepository, uow: UnitOfWork, fechar_service: FecharTicketService):
        super().__init__(ticket_repo, uow)
        self.fechar_service = fechar_service

    def execute(self, input_dto: ResponderFechamentoInputDTO) -> TicketOutputDTO:
        with self.uow:
            ator = current()
            ticket = self._obter_por_pedido(ator, input_dto.pedido_id)

            _autorizar(
                ator,
                ator.identidade_id == ticket.aberto_por_id,
                PermissionFlags.TICKET_CLOSE_ANY,
            )

            return self.fechar_service.execute(
                FecharTicketInputDTO(
                    ticket_id=ticket.id,
                    fechado_por_id=input_dto.respondido_por_id or ator.identidade_id,
                    motivo=ticket.pedido_fechamento.motivo,
                )
            )


class NegarFechamentoService(_TicketService):
    """Use Case: Abertor nega o pedido; o ticket continua aberto."""

    def __init__(self, ticket_repo: TicketRepository, uow: UnitOfWork, scheduler: AutoCloseScheduler):
        super().__init__(ticket_repo, uow)
        self.scheduler = scheduler

    def execute(self, input_dto: ResponderFechamentoInputDTO) -> TicketOutputDTO:
        with self.uow:
            ator = current()
            ticket = self._obter_por_pedido(ator, input_dto.pedido_id)

            _autorizar(
                ator,
                ator.identidade_id == ticket.aberto_por_id,
                PermissionFlags.TICKET_CLOSE_ANY,
            )

            pedido = ticket.descartar_pedido_fechamento(input_dto.pedido_id)
            self.ticket_repo.save(ticket)

            if pedido.fechamento_automatico_em:
                self.uow.after_commit(
                    partial(self.scheduler.cancel, ticket.id, pedido.id),
                    "cancelar-fechamento-automatico",
                )

            self.uow.publish_event(
                FechamentoNegadoEvent(
                    aggregate_id=ticket.id,
                    tenant_id=ticket.tenant_id,
                    pedido_id=pedido.id,
                    negado_por_id=input_dto.respondido_por_id or ator.identidade_id,
                    canal_id=ticket.canal_id,
                )
            )

        return TicketOutputDTO.from_entity(ticket)


class FecharAutomaticamenteService(_TicketService):
    """
    Use Case: Timer de fechamento automático disparou.

    Executado como SystemActor. Se o ticket já foi fechado ou o pedido
    foi substituído/negado, não faz nada e não levanta erro.
    """

    def __init__(self, ticket_repo: TicketRepository, uow: UnitOfWork, fechar_service: FecharTicketService):
        super().__init__(ticket_repo, uow)
        self.fechar_service = fechar_service

    def execute(self, ticket_id: str, pedido_id: str) -> Optional[TicketOutputDTO]:
        """
        Returns:
            Ticket fechado, ou None se o timer estava obsoleto
        """
        try:
            return self._executar(ticket_id, pedido_id)
        except ConflictError:
            if in_transaction():
                raise
            logger.info(f"Fechamento automático de {ticket_id} perdeu corrida; ignorando")
            return None

    def _executar(self, ticket_id: str, pedido_id: str) -> Optional[TicketOutputDTO]:
        with self.uow:
            ticket = self.ticket_repo.get_by_id(ticket_id, for_update=True)
            if ticket is None:
                logger.warning(f"Fechamento automático: ticket {ticket_id} não existe mais")
                return None

            if not ticket.pode_fechar_automaticamente(pedido_id):
                logger.info(
                    f"Fechamento automático obsoleto para ticket {ticket_id} "
                    f"(pedido {pedido_id})"
                )
                return None

            self.fechar_service.fechar(
                ticket,
                fechado_por_id=ticket.pedido_fechamento.solicitado_por_id,
                motivo=MOTIVO_FECHAMENTO_AUTOMATICO,
                automatico=True,
            )

        return TicketOutputDTO.from_entity(ticket)


class ReabrirTicketService(_TicketService):
    """Use Case: Reabrir ticket fechado (abertor ou TICKET_CLOSE_ANY)."""

    def execute(self, input_dto: ReabrirTicketInputDTO) -> TicketOutputDTO:
        """
        Raises:
            ConflictError: Se ticket não está fechado
        """
        with self.uow:
            ator = current()
            ticket = self._obter_ticket(ator, input_dto.ticket_id)

            _autorizar(
                ator,
                ator.identidade_id == ticket.aberto_por_id,
                PermissionFlags.TICKET_CLOSE_ANY,
            )

            ticket.reabrir()
            self.ticket_repo.save(ticket)

            self.uow.publish_event(
                TicketReabertoEvent(
                    aggregate_id=ticket.id,
                    tenant_id=ticket.tenant_id,
                    reaberto_por_id=input_dto.reaberto_por_id or ator.identidade_id,
                    aberto_por_id=ticket.aberto_por_id,
                    canal_id=ticket.canal_id,
                )
            )

        return TicketOutputDTO.from_entity(ticket)


class AdicionarParticipanteService(_TicketService):
    """Use Case: Adicionar participante (atendente ou TICKET_ASSIGN)."""

    def execute(self, input_dto: ParticipanteInputDTO) -> TicketOutputDTO:
        papel = PapelParticipante.from_string(input_dto.papel)

        with self.uow:
            ator = current()
            ticket = self._obter_ticket(ator, input_dto.ticket_id)

            _autorizar(
                ator,
                ticket.assumido_por_id is not None and ticket.assumido_por_id == ator.identidade_id,
                PermissionFlags.TICKET_ASSIGN,
            )

            if ticket.adicionar_participante(input_dto.identidade_id, papel):
                self.ticket_repo.save(ticket)
                self.uow.publish_event(
                    ParticipanteAdicionadoEvent(
                        aggregate_id=ticket.id,
                        tenant_id=ticket.tenant_id,
                        identidade_id=input_dto.identidade_id,
                        papel=papel.value,
                        canal_id=ticket.canal_id,
                    )
                )

        return TicketOutputDTO.from_entity(ticket)


class RemoverParticipanteService(_TicketService):
    """Use Case: Remover participante de todos os papéis (idempotente)."""

    def execute(self, input_dto: ParticipanteInputDTO) -> TicketOutputDTO:
        with self.uow:
            ator = current()
            ticket = self._obter_ticket(ator, input_dto.ticket_id)

            _autorizar(
                ator,
                ticket.assumido_por_id is not None and ticket.assumido_por_id == ator.identidade_id,
                PermissionFlags.TICKET_ASSIGN,
            )

            if ticket.remover_participante(input_dto.identidade_id):
                self.ticket_repo.save(ticket)
                self.uow.publish_event(
                    ParticipanteRemovidoEvent(
                        aggregate_id=ticket.id,
                        tenant_id=ticket.tenant_id,
                        identidade_id=input_dto.identidade_id,
                        canal_id=ticket.canal_id,
                    )
                )

        return TicketOutputDTO.from_entity(ticket)


class VincularCanalService(_TicketService):
    """
    Use Case: Registrar o canal externo criado para o ticket.

    Chamado pelo efeito de criação de canal (como SystemActor) ou por
    fluxos que criam o canal antes. Um canal pertence a um único ticket.
    """

    def execute(self, input_dto: VincularCanalInputDTO) -> TicketOutputDTO:
        """
        Raises:
            ConflictError: Se ticket já tem outro canal ou canal já é de outro ticket
        """
        with self.uow:
            ator = current()
            ticket = self._obter_ticket(ator, input_dto.ticket_id)

            outro = self.ticket_repo.get_by_canal_id(input_dto.canal_id)
            if outro is not None and outro.id != ticket.id:
                raise ConflictError("Canal já vinculado a outro ticket", rule="canal_unico")

            if ticket.vincular_canal(input_dto.canal_id):
                self.ticket_repo.save(ticket)
                self.uow.publish_event(
                    CanalVinculadoEvent(
                        aggregate_id=ticket.id,
                        tenant_id=ticket.tenant_id,
                        canal_id=input_dto.canal_id,
                    )
                )

        return TicketOutputDTO.from_entity(ticket)


class DefinirExclusaoFechamentoAutomaticoService(_TicketService):
    """Use Case: Liga/desliga exclusão do fechamento automático (TICKET_CLOSE_ANY)."""

    def __init__(self, ticket_repo: TicketRepository, uow: UnitOfWork, scheduler: AutoCloseScheduler):
        super().__init__(ticket_repo, uow)
        self.scheduler = scheduler

    def execute(self, input_dto: DefinirExclusaoFechamentoAutomaticoInputDTO) -> TicketOutputDTO:
        with self.uow:
            ator = require_capability(PermissionFlags.TICKET_CLOSE_ANY)
            ticket = self._obter_ticket(ator, input_dto.ticket_id)

            pedido = ticket.definir_exclusao_fechamento_automatico(input_dto.excluir)
            self.ticket_repo.save(ticket)

            if pedido is not None:
                self.uow.after_commit(
                    partial(self.scheduler.cancel, ticket.id, pedido.id),
                    "cancelar-fechamento-automatico",
                )

        return TicketOutputDTO.from_entity(ticket)


class ObterTicketService(_TicketService):
    """
    Use Case: Obter ticket específico.

    Envolvidos (abertor, atendente, participantes) sempre enxergam;
    demais precisam de TICKET_VIEW_ALL.
    """

    def __init__(self, ticket_repo: TicketRepository):
        self.ticket_repo = ticket_repo

    def execute(self, ticket_id: str) -> TicketOutputDTO:
        ator = current()
        ticket = self._obter_ticket(ator, ticket_id, for_update=False)
        _autorizar(ator, ticket.eh_envolvido(ator.identidade_id), PermissionFlags.TICKET_VIEW_ALL)
        return TicketOutputDTO.from_entity(ticket)


class ListarTicketsService:
    """
    Use Case: Listar tickets do tenant com filtros.

    Listar os próprios tickets não exige capacidade; qualquer outra
    listagem exige TICKET_VIEW_ALL.
    """

    def __init__(self, ticket_repo: TicketRepository):
        self.ticket_repo = ticket_repo

    def execute(self, query: ListarTicketsQueryDTO) -> List[TicketOutputDTO]:
        ator = current()

        tenant_id = query.tenant_id
        if not isinstance(ator, SystemActor):
            if tenant_id and tenant_id != ator.tenant_id:
                return []
            tenant_id = ator.tenant_id

        _autorizar(
            ator,
            query.aberto_por_id is not None and query.aberto_por_id == ator.identidade_id,
            PermissionFlags.TICKET_VIEW_ALL,
        )

        status = None
        if query.status:
            try:
                status = TicketStatus.from_string(query.status)
            except ValueError as e:
                raise ValidationError(str(e), field="status")

        tickets = self.ticket_repo.list(
            tenant_id=tenant_id,
            status=status,
            aberto_por_id=query.aberto_por_id,
            assumido_por_id=query.assumido_por_id,
            limite=query.limite,
        )
        return [TicketOutputDTO.from_entity(t) for t in tickets]
