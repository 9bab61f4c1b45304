"""
Núcleo do domínio - O Hexágono.

Subpacotes:
- shared: Contexto de ator, transações, eventos e exceções
- permissions: Flags de capacidade e cálculo de permissões efetivas
- tickets: Máquina de estados do ticket, use cases e efeitos diferidos

Nada aqui importa Django ou clientes HTTP; os adapters implementam os
ports definidos em cada subpacote.
"""
