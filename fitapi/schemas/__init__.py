from .auth import CurrentUser, TokenPayload
from .coins import CoinBalance, CoinReference
from .steps import StepSubmission, StepRecordResponse
from .orders import OrderCreateRequest, OrderResponse, OrderDetailResponse
from .settings import SettingResponse
