"""Configurações centralizadas do wontan_connect.

Este módulo exporta:
- Settings: classe de configuração via variáveis de ambiente
- get_settings: função cacheada para obter instância única

Uso típico:
    from wontan_connect.config import get_settings
"""

from wontan_connect.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
