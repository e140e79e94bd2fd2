"""
HTTP client for the Distribuidora REST API.

Every call goes through ``ApiClient._request``: transport failures and
non-2xx answers become ``ApiError``; a 409 on order creation becomes
``InsufficientStockError`` carrying the shortages reported by the server.
An expired access token is refreshed once and the call retried.
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional

import requests

from distribuidora.pos.reconciliation import Shortage

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


class ApiError(Exception):
    """Request failed: ``status`` is None when the server was not reached"""

    def __init__(self, status: Optional[int], payload=None, message: Optional[str] = None):
        self.status = status
        self.payload = payload if payload is not None else {}
        if message is None:
            if isinstance(self.payload, dict) and self.payload.get('error'):
                message = str(self.payload['error'])
            else:
                message = f"API request failed with status {status}"
        super().__init__(message)


class InsufficientStockError(ApiError):
    """Server refused an order because stock ran out since the last snapshot"""

    def __init__(self, status, payload):
        super().__init__(status, payload)
        self.shortages = [
            Shortage(
                product_id=int(row['product_id']),
                requested=int(row['requested']),
                available=int(row['available']),
            )
            for row in self.payload.get('insufficient', [])
        ]


class ApiClient:
    """Thin wrapper over a ``requests.Session`` holding the JWT pair"""

    def __init__(self, base_url: str, session: Optional[requests.Session] = None,
                 timeout: int = DEFAULT_TIMEOUT, access_token: Optional[str] = None,
                 refresh_token: Optional[str] = None):
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.timeout = timeout
        self.access_token = access_token
        self.refresh_token = refresh_token

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self) -> Dict[str, str]:
        headers = {'Accept': 'application/json'}
        if self.access_token:
            headers['Authorization'] = f'Bearer {self.access_token}'
        return headers

    def _send(self, method, path, json=None, params=None):
        try:
            return self.session.request(
                method,
                self._url(path),
                json=json,
                params=params,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ApiError(None, {'error': str(e)}) from e

    @staticmethod
    def _payload(response):
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return {'error': response.text}

    def _request(self, method: str, path: str, json=None, params=None, raw: bool = False,
                 retry_on_unauthorized: bool = True):
        response = self._send(method, path, json=json, params=params)

        if response.status_code == 401 and retry_on_unauthorized and self.refresh_token:
            logger.debug(f"{method} {path} unauthorized, refreshing access token")
            self.refresh()
            response = self._send(method, path, json=json, params=params)

        if not 200 <= response.status_code < 300:
            payload = self._payload(response)
            logger.warning(f"{method} {path} returned {response.status_code}: {payload}")
            raise ApiError(response.status_code, payload)

        if raw:
            return response.text
        return self._payload(response)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> dict:
        """Authenticate and keep the token pair; returns ``{access, refresh, user}``"""
        data = self._request('POST', 'auth/login/', json={'username': username, 'password': password},
                             retry_on_unauthorized=False)
        self.access_token = data['access']
        self.refresh_token = data['refresh']
        return data

    def refresh(self) -> str:
        if not self.refresh_token:
            raise ApiError(401, {'error': 'Not logged in'})
        data = self._request('POST', 'auth/refresh/', json={'refresh': self.refresh_token},
                             retry_on_unauthorized=False)
        self.access_token = data['access']
        if data.get('refresh'):
            self.refresh_token = data['refresh']
        return self.access_token

    def logout(self):
        """Tell the server (for the audit trail) and drop the tokens"""
        try:
            if self.access_token:
                self._request('POST', 'auth/logout/', json={'refresh': self.refresh_token},
                              retry_on_unauthorized=False)
        finally:
            self.access_token = None
            self.refresh_token = None

    def me(self) -> dict:
        return self._request('GET', 'auth/me/')

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def list_products(self, product_type: Optional[str] = None, search: Optional[str] = None) -> List[dict]:
        params = {}
        if product_type:
            params['type'] = product_type
        if search:
            params['search'] = search
        return self._request('GET', 'products/', params=params or None)

    def get_product(self, product_id: int) -> dict:
        return self._request('GET', f'products/{product_id}/')

    def create_product(self, data: dict) -> dict:
        return self._request('POST', 'products/', json=data)

    def update_product(self, product_id: int, data: dict) -> dict:
        return self._request('PATCH', f'products/{product_id}/', json=data)

    def delete_product(self, product_id: int):
        self._request('DELETE', f'products/{product_id}/')

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    def list_customers(self, search: Optional[str] = None) -> List[dict]:
        return self._request('GET', 'customers/', params={'search': search} if search else None)

    def search_customers_by_phone(self, phone: str) -> List[dict]:
        return self._request('GET', 'customers/search/', params={'phone': phone})

    def get_customer(self, customer_id: int) -> dict:
        return self._request('GET', f'customers/{customer_id}/')

    def create_customer(self, data: dict) -> dict:
        return self._request('POST', 'customers/', json=data)

    def update_customer(self, customer_id: int, data: dict) -> dict:
        return self._request('PATCH', f'customers/{customer_id}/', json=data)

    def delete_customer(self, customer_id: int):
        self._request('DELETE', f'customers/{customer_id}/')

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def create_order(self, payload: dict) -> dict:
        """Place an order built by ``Cart.to_order_payload``"""
        try:
            return self._request('POST', 'orders/', json=payload)
        except ApiError as e:
            if e.status == 409:
                raise InsufficientStockError(e.status, e.payload) from e
            raise

    def get_order(self, order_id: int) -> dict:
        return self._request('GET', f'orders/{order_id}/')

    def list_orders(self) -> List[dict]:
        return self._request('GET', 'orders/')

    def list_orders_by_customer(self, customer_id: int) -> List[dict]:
        return self._request('GET', f'customers/{customer_id}/orders/')

    def update_order(self, order_id: int, created_at) -> dict:
        """Administrative timestamp correction (admin only)"""
        if hasattr(created_at, 'isoformat'):
            created_at = created_at.isoformat()
        return self._request('PATCH', f'orders/{order_id}/', json={'created_at': created_at})

    def delete_order(self, order_id: int):
        self._request('DELETE', f'orders/{order_id}/')

    def generate_receipt(self, order_id: int) -> str:
        return self._request('GET', f'orders/{order_id}/receipt/', raw=True)

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------

    def stock_in(self, product_id: int, quantity: int) -> dict:
        return self._request('POST', 'stock/in/', json={'product_id': product_id, 'quantity': quantity})

    def stock_out(self, product_id: int, quantity: int) -> dict:
        return self._request('POST', 'stock/out/', json={'product_id': product_id, 'quantity': quantity})

    def stock_adjust(self, product_id: int, delta: int) -> dict:
        return self._request('POST', 'stock/adjust/', json={'product_id': product_id, 'quantity': delta})

    def list_stock_movements(self, product_id: Optional[int] = None) -> List[dict]:
        return self._request('GET', 'stock/movements/',
                             params={'product_id': product_id} if product_id is not None else None)

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def dashboard(self) -> dict:
        data = self._request('GET', 'dashboard/')
        for key in ('sales_today', 'sales_month'):
            data[key] = Decimal(data[key])
        return data

    # ------------------------------------------------------------------
    # Users (admin only)
    # ------------------------------------------------------------------

    def list_users(self) -> List[dict]:
        return self._request('GET', 'users/')

    def create_user(self, username: str, password: str, role: str = 'operator') -> dict:
        return self._request('POST', 'users/', json={'username': username, 'password': password, 'role': role})

    def update_user(self, user_id: int, data: dict) -> dict:
        return self._request('PATCH', f'users/{user_id}/', json=data)

    def delete_user(self, user_id: int):
        self._request('DELETE', f'users/{user_id}/')
