"""Runtime support imported by generated model and API modules."""

from .binding import BindError as BindError
from .binding import Binding as Binding
from .binding import bind as bind
from .model import Empty as Empty
from .model import Extension as Extension
from .model import Model as Model
from .model import field as field
from .model import which_oneof as which_oneof
from .response import Response as Response
from .response import error as error
from .response import json as json
from .router import Context as Context
from .router import Missing as Missing
from .router import Resolved as Resolved
from .router import context as context
from .router import handle as handle
from .router import register_middleware as register_middleware
from .router import resolve_middlewares as resolve_middlewares
from .router import set_value as set_value
