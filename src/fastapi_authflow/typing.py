from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Mapping, Union

TYPE_CHECKING = False

if TYPE_CHECKING:
    from fastapi_authflow.config import ClientConfig

JSONDict = Dict[str, Any]
ClientConfigs = Mapping[str, Union["ClientConfig", Mapping[str, Any]]]
ClientSource = Union[ClientConfigs, str, Path]
SuccessHandler = Callable[..., Union[Any, Awaitable[Any]]]
