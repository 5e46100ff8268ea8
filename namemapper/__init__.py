from namemapper.core.configuration import Configuration
from namemapper.core.exceptions import (
    BadFormatError,
    ConfigurationError,
    NameMappingError,
    NoMatchingRuleError,
    ParseError,
    ProviderInfrastructureError,
)
from namemapper.core.providers import NameMappingProvider, create_provider, register_provider, unregister_provider
from namemapper.services.composite_service import CompositeNameMapper
from namemapper.services.principal_service import Principal, parse_principal
from namemapper.services.resolver_service import (
    PrincipalResolver,
    reload_global_configuration,
    reset_global_configuration,
    set_global_configuration,
    set_rules,
)
from namemapper.services.rule_service import RuleTranslator

__version__ = "0.1.0"

__all__ = [
    "BadFormatError",
    "CompositeNameMapper",
    "Configuration",
    "ConfigurationError",
    "NameMappingError",
    "NameMappingProvider",
    "NoMatchingRuleError",
    "ParseError",
    "Principal",
    "PrincipalResolver",
    "ProviderInfrastructureError",
    "RuleTranslator",
    "create_provider",
    "parse_principal",
    "register_provider",
    "reload_global_configuration",
    "reset_global_configuration",
    "set_global_configuration",
    "set_rules",
    "unregister_provider",
]
