"""
API Views JSON para o domínio de Tickets.

Consumida pelo painel web. O ator vem do ActorContextMiddleware; as
views apenas traduzem JSON para DTOs e exceções para status HTTP.

Endpoints:
- GET  /tickets/api/                               - Listar tickets
- POST /tickets/api/                               - Abrir ticket
- GET  /tickets/api/<id>/                          - Obter ticket
- GET  /tickets/api/<id>/eventos/                  - Histórico do ticket
- POST /tickets/api/<id>/assumir/                  - Assumir
- POST /tickets/api/<id>/liberar/                  - Liberar
- POST /tickets/api/<id>/fechar/                   - Fechar
- POST /tickets/api/<id>/reabrir/                  - Reabrir
- POST /tickets/api/<id>/solicitar-fechamento/     - Pedido de fechamento
- POST /tickets/api/<id>/fechamento-automatico/    - Exclusão do timer
- POST /tickets/api/<id>/participantes/            - Adicionar participante
- DELETE /tickets/api/<id>/participantes/<ident>/  - Remover participante
- POST /tickets/api/pedidos/<pedido>/aprovar/      - Aprovar pedido
- POST /tickets/api/pedidos/<pedido>/negar/        - Negar pedido

Formato:
- Entrada: JSON
- Saída: JSON com estrutura {success, data/error, meta}
"""

import json
import logging
from typing import Any, Dict

from django.views import View
from django.http import JsonResponse, HttpRequest
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt

from src.core.shared.context import current_or_none
from src.core.tickets.dtos import (
    CriarTicketInputDTO,
    AssumirTicketInputDTO,
    LiberarTicketInputDTO,
    FecharTicketInputDTO,
    SolicitarFechamentoInputDTO,
    ResponderFechamentoInputDTO,
    ReabrirTicketInputDTO,
    ParticipanteInputDTO,
    DefinirExclusaoFechamentoAutomaticoInputDTO,
    ListarTicketsQueryDTO,
)
from src.core.shared.exceptions import (
    ValidationError,
    EntityNotFoundError,
    PermissionDeniedError,
    ConflictError,
    LimitExceededError,
    BusinessRuleViolationError,
    NoContextError,
    DomainException,
)
from src.config.container import get_container

logger = logging.getLogger(__name__)


# =============================================================================
# Helpers
# =============================================================================

def json_response(success: bool, data: Any = None, error: Any = None,
                  status: int = 200, meta: Dict = None) -> JsonResponse:
    """
    Cria resposta JSON padronizada.

    Args:
        success: Se operação foi bem sucedida
        data: Dados da resposta
        error: Erro (dict de DomainException.to_dict ou mensagem)
        status: HTTP status code
        meta: Metadados adicionais
    """
    response = {'success': success}

    if data is not None:
        response['data'] = data

    if error is not None:
        response['error'] = error

    if meta is not None:
        response['meta'] = meta

    return JsonResponse(response, status=status)


def parse_json_body(request: HttpRequest) -> Dict:
    """
    Parseia body JSON do request.

    Raises:
        ValidationError: Se JSON inválido ou não for objeto
    """
    if not request.body:
        return {}

    try:
        data = json.loads(request.body)
    except json.JSONDecodeError as e:
        raise ValidationError(f"JSON inválido: {e}", field="body")

    if not isinstance(data, dict):
        raise ValidationError("Corpo deve ser um objeto JSON", field="body")
    return data


# Ordem importa: subclasses antes das bases
ERROR_STATUS = (
    (ValidationError, 400),
    (PermissionDeniedError, 403),
    (EntityNotFoundError, 404),
    (ConflictError, 409),
    (LimitExceededError, 429),
    (BusinessRuleViolationError, 422),
)


# =============================================================================
# Base API View
# =============================================================================

@method_decorator(csrf_exempt, name='dispatch')
class BaseAPIView(View):
    """
    View base para APIs JSON.

    Fornece:
    - Exigência de ator autenticado
    - Acesso aos services do container DI
    - Tratamento de erros padronizado
    """

    def dispatch(self, request: HttpRequest, *args, **kwargs) -> JsonResponse:
        if current_or_none() is None:
            return json_response(
                success=False,
                error={'error': 'UNAUTHENTICATED', 'message': 'Autenticação necessária'},
                status=401,
            )

        try:
            return super().dispatch(request, *args, **kwargs)
        except Exception as e:
            return self.handle_exception(e)

    def get_service(self, service_name: str):
        """Obtém service do container."""
        return getattr(get_container(), service_name)()

    def parse_body(self, request: HttpRequest) -> Dict:
        return parse_json_body(request)

    def handle_exception(self, e: Exception) -> JsonResponse:
        """
        Traduz exceção em resposta JSON.

        NoContextError é erro de programação: responde 500 genérico.
        """
        if isinstance(e, NoContextError):
            logger.error(f"Contexto ausente na API: {e}", exc_info=True)
            return self._erro_interno()

        if isinstance(e, DomainException):
            for tipo, status in ERROR_STATUS:
                if isinstance(e, tipo):
                    return json_response(success=False, error=e.to_dict(), status=status)
            return json_response(success=False, error=e.to_dict(), status=422)

        logger.exception(f"Erro inesperado na API: {e}")
        return self._erro_interno()

    def _erro_interno(self) -> JsonResponse:
        return json_response(
            success=False,
            error={'error': 'INTERNAL_ERROR', 'message': 'Erro interno do servidor'},
            status=500
        )


# =============================================================================
# Ticket API Views
# =============================================================================

class TicketAPIListView(BaseAPIView):
    """
    GET /tickets/api/ - Lista tickets
    POST /tickets/api/ - Abre ticket
    """

    def get(self, request: HttpRequest) -> JsonResponse:
        """
        Query params:
        - status: OPEN | CLOSED
        - aberto_por_id / assumido_por_id
        - limite (default: 50, máx: 200)
        """
        try:
            limite = min(int(request.GET.get('limite', 50)), 200)
        except ValueError:
            raise ValidationError("limite deve ser inteiro", field="limite")

        query = ListarTicketsQueryDTO(
            status=request.GET.get('status') or None,
            aberto_por_id=request.GET.get('aberto_por_id') or None,
            assumido_por_id=request.GET.get('assumido_por_id') or None,
            limite=limite,
        )
        tickets = self.get_service('listar_tickets_service').execute(query)

        return json_response(
            success=True,
            data=[t.to_dict() for t in tickets],
            meta={'total': len(tickets), 'limite': limite},
        )

    def post(self, request: HttpRequest) -> JsonResponse:
        """
        Body JSON:
        {
            "assunto": "string (opcional)",
            "painel_id": "string (opcional)",
            "canal_id": "string (opcional)",
            "metadados": {} (opcional)
        }
        """
        data = self.parse_body(request)
        ator = current_or_none()

        output = self.get_service('criar_ticket_service').execute(
            CriarTicketInputDTO(
                tenant_id=ator.tenant_id,
                assunto=data.get('assunto'),
                painel_id=data.get('painel_id'),
                canal_id=data.get('canal_id'),
                metadados=data.get('metadados'),
            )
        )

        logger.info(f"API: Ticket criado: {output.id} (#{output.numero})")
        return json_response(success=True, data=output.to_dict(), status=201)


class TicketAPIDetailView(BaseAPIView):
    """GET /tickets/api/<id>/"""

    def get(self, request: HttpRequest, pk: str) -> JsonResponse:
        ticket = self.get_service('obter_ticket_service').execute(pk)
        return json_response(success=True, data=ticket.to_dict())


class TicketAPIEventosView(BaseAPIView):
    """GET /tickets/api/<id>/eventos/ - histórico de transições (outbox)."""

    def get(self, request: HttpRequest, pk: str) -> JsonResponse:
        # Mesma autorização da leitura do ticket
        self.get_service('obter_ticket_service').execute(pk)

        eventos = get_container().event_store().get_events_for_aggregate(pk)
        data = [
            {
                'event_id': e['event_id'],
                'event': e['event_name'],
                'occurred_at': e['occurred_at'],
                'data': e['data'],
                'status': e.get('status'),
            }
            for e in eventos
        ]
        return json_response(success=True, data=data, meta={'total': len(data)})


class TicketAPIAssumirView(BaseAPIView):
    """POST /tickets/api/<id>/assumir/"""

    def post(self, request: HttpRequest, pk: str) -> JsonResponse:
        output = self.get_service('assumir_ticket_service').execute(
            AssumirTicketInputDTO(ticket_id=pk)
        )
        return json_response(success=True, data=output.to_dict())


class TicketAPILiberarView(BaseAPIView):
    """POST /tickets/api/<id>/liberar/"""

    def post(self, request: HttpRequest, pk: str) -> JsonResponse:
        output = self.get_service('liberar_ticket_service').execute(
            LiberarTicketInputDTO(ticket_id=pk)
        )
        return json_response(success=True, data=output.to_dict())


class TicketAPIFecharView(BaseAPIView):
    """
    POST /tickets/api/<id>/fechar/

    Body JSON:
    {
        "motivo": "string (opcional)",
        "excluir_canal": false,
        "notificar_abertor": true
    }
    """

    def post(self, request: HttpRequest, pk: str) -> JsonResponse:
        data = self.parse_body(request)

        output = self.get_service('fechar_ticket_service').execute(
            FecharTicketInputDTO(
                ticket_id=pk,
                motivo=data.get('motivo'),
                excluir_canal=bool(data.get('excluir_canal', False)),
                notificar_abertor=bool(data.get('notificar_abertor', True)),
            )
        )

        logger.info(f"API: Ticket {pk} fechado")
        return json_response(success=True, data=output.to_dict())


class TicketAPIReabrirView(BaseAPIView):
    """POST /tickets/api/<id>/reabrir/"""

    def post(self, request: HttpRequest, pk: str) -> JsonResponse:
        output = self.get_service('reabrir_ticket_service').execute(
            ReabrirTicketInputDTO(ticket_id=pk)
        )
        logger.info(f"API: Ticket {pk} reaberto")
        return json_response(success=True, data=output.to_dict())


class TicketAPISolicitarFechamentoView(BaseAPIView):
    """
    POST /tickets/api/<id>/solicitar-fechamento/

    Body JSON:
    {
        "motivo": "string (opcional)",
        "horas_fechamento_automatico": 24 (opcional)
    }
    """

    def post(self, request: HttpRequest, pk: str) -> JsonResponse:
        data = self.parse_body(request)

        horas = data.get('horas_fechamento_automatico')
        if horas is not None and not isinstance(horas, (int, float)):
            raise ValidationError("Horas devem ser numéricas", field="horas_fechamento_automatico")

        output = self.get_service('solicitar_fechamento_service').execute(
            SolicitarFechamentoInputDTO(
                ticket_id=pk,
                motivo=data.get('motivo'),
                horas_fechamento_automatico=horas,
            )
        )
        return json_response(success=True, data=output.to_dict(), status=201)


class PedidoFechamentoAPIAprovarView(BaseAPIView):
    """POST /tickets/api/pedidos/<pedido_id>/aprovar/"""

    def post(self, request: HttpRequest, pedido_id: str) -> JsonResponse:
        output = self.get_service('aprovar_fechamento_service').execute(
            ResponderFechamentoInputDTO(pedido_id=pedido_id)
        )
        return json_response(success=True, data=output.to_dict())


class PedidoFechamentoAPINegarView(BaseAPIView):
    """POST /tickets/api/pedidos/<pedido_id>/negar/"""

    def post(self, request: HttpRequest, pedido_id: str) -> JsonResponse:
        output = self.get_service('negar_fechamento_service').execute(
            ResponderFechamentoInputDTO(pedido_id=pedido_id)
        )
        return json_response(success=True, data=output.to_dict())


class TicketAPIParticipantesView(BaseAPIView):
    """
    POST /tickets/api/<id>/participantes/

    Body JSON:
    {
        "identidade_id": "string (obrigatório)",
        "papel": "participant" (opcional)
    }
    """

    def post(self, request: HttpRequest, pk: str) -> JsonResponse:
        data = self.parse_body(request)

        if not data.get('identidade_id'):
            raise ValidationError("identidade_id é obrigatório", field="identidade_id")

        output = self.get_service('adicionar_participante_service').execute(
            ParticipanteInputDTO(
                ticket_id=pk,
                identidade_id=str(data['identidade_id']),
                papel=data.get('papel', 'participant'),
            )
        )
        return json_response(success=True, data=output.to_dict())


class TicketAPIParticipanteDetailView(BaseAPIView):
    """DELETE /tickets/api/<id>/participantes/<identidade_id>/"""

    def delete(self, request: HttpRequest, pk: str, identidade_id: str) -> JsonResponse:
        output = self.get_service('remover_participante_service').execute(
            ParticipanteInputDTO(ticket_id=pk, identidade_id=identidade_id)
        )
        return json_response(success=True, data=output.to_dict())


class TicketAPIFechamentoAutomaticoView(BaseAPIView):
    """
    POST /tickets/api/<id>/fechamento-automatico/

    Body JSON:
    {
        "excluir": true
    }
    """

    def post(self, request: HttpRequest, pk: str) -> JsonResponse:
        data = self.parse_body(request)

        output = self.get_service('definir_exclusao_fechamento_automatico_service').execute(
            DefinirExclusaoFechamentoAutomaticoInputDTO(
                ticket_id=pk,
                excluir=bool(data.get('excluir', True)),
            )
        )
        return json_response(success=True, data=output.to_dict())
