"""Jinja2 environment shared by every emitter."""
from functools import lru_cache

from jinja2 import Environment, PackageLoader, StrictUndefined

from apiforge.config.profiles import Casing, NamingRule, Number
from apiforge.mapping.naming import apply_case, convert, split_words


def _casing(casing: Casing):
    return lambda value: apply_case(split_words(str(value)), casing)


def _plural(value: str) -> str:
    return convert(str(value), NamingRule(case=Casing.SNAKE, number=Number.PLURAL))


def _singular(value: str) -> str:
    return convert(str(value), NamingRule(case=Casing.SNAKE, number=Number.SINGULAR))


@lru_cache(maxsize=1)
def create_jinja_env() -> Environment:
    """Create Jinja2 environment with naming filters."""
    env = Environment(
        loader=PackageLoader('apiforge.targets', 'templates'),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        autoescape=False,
    )

    # String transformation filters
    env.filters['pascal_case'] = _casing(Casing.PASCAL)
    env.filters['camel_case'] = _casing(Casing.CAMEL)
    env.filters['snake_case'] = _casing(Casing.SNAKE)
    env.filters['kebab_case'] = _casing(Casing.KEBAB)
    env.filters['upper_snake'] = _casing(Casing.UPPER_SNAKE)
    env.filters['plural'] = _plural
    env.filters['singular'] = _singular

    # Quoting helpers
    env.filters['quote'] = lambda x: f"'{x}'"
    env.filters['dquote'] = lambda x: f'"{x}"'
    env.filters['braced'] = lambda x: '{' + str(x) + '}'

    return env


def render(template_name: str, **context) -> str:
    """Render a packaged template."""
    return create_jinja_env().get_template(template_name).render(**context)
