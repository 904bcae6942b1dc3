"""
Backend applicativo do consultório (single-tenant, uma profissional).

Estrutura:
- config.py        : variáveis de ambiente e constantes
- db.py            : engine e sessões SQLAlchemy
- models.py        : modelos ORM e enums
- schemas.py       : registros pydantic (nomes camelCase no JSON)
- gateway.py       : list/save/delete por tabela, degradação silenciosa
- store.py         : estado em memória, escrita otimista com reversão
- services.py      : agenda (ciclo de vida da consulta, bloqueios, lembretes)
- records.py       : pacientes, prontuário, financeiro, tipos de consulta
- availability.py  : disponibilidade do dia
- holidays.py      : feriados nacionais
- checks.py        : verificações sequenciais pós-login
- reports.py       : resumos do dashboard e do financeiro
- messaging.py     : textos e links de WhatsApp / Gmail
- formatting.py    : moeda, datas e grade de horários
- backup.py        : backup/restauração em JSON
- auth_security.py : senha do consultório e token de sessão
- seed.py          : tipos de consulta padrão
- api_main.py      : API HTTP (FastAPI)
- cli.py           : ferramenta administrativa
"""
