"""
Lightweight Azure Media Services (REST API v2) client using httpx.
Implements the MediaPlatform interface from protectflow.platform.

Entities are addressed OData style, e.g. Assets('nb%3Acid%3AUUID%3A...'),
and related entities are attached by POSTing an entity URI to a $links
collection. JSON light (application/json) is used for all payloads.
"""
from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import httpx

from protectflow.crypto import calculate_key_checksum, content_key_id, encrypt_content_key
from protectflow.models import (
    AccessPermissions,
    AccessPolicy,
    Asset,
    AssetDeliveryPolicyConfigurationKey,
    AssetDeliveryPolicyType,
    AssetDeliveryProtocol,
    AssetFile,
    AuthorizationPolicy,
    AuthorizationPolicyOption,
    ContentKey,
    ContentKeyType,
    DeliveryPolicy,
    KeyDeliveryType,
    KeyRestriction,
    Locator,
    LocatorType,
    StreamingEndpoint,
)
from protectflow.platform import PlatformError
from providers.azure.aad import AzureADTokenProvider


DEFAULT_API_VERSION = "2.19"
# ProtectionKeyType.X509CertificateThumbprint
PROTECTION_KEY_TYPE_X509 = 0


def _parse_datetime(value: Any) -> datetime:
    """Parse an OData timestamp; naive values are UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    return parsed.replace(tzinfo=timezone.utc) if parsed.tzinfo is None else parsed


def _wire_enum(enum_cls, value: Any):
    """Map a wire integer to its enum member, keeping values newer than the enum as int."""
    try:
        return enum_cls(value)
    except ValueError:
        return int(value)


def _format_datetime(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class MediaServicesClient:
    """Media Services REST v2 client bound to one account."""

    def __init__(
        self,
        api_endpoint: str,
        token_provider: AzureADTokenProvider,
        api_version: str = DEFAULT_API_VERSION,
        http_client: httpx.Client | None = None,
    ):
        if not api_endpoint:
            raise ValueError("Media Services REST API endpoint is required")
        self.api_endpoint = api_endpoint.rstrip("/") + "/"
        self.api_version = api_version
        self._token_provider = token_provider
        self._client = http_client

    @classmethod
    def from_settings(cls, settings) -> "MediaServicesClient":
        token_provider = AzureADTokenProvider(
            tenant_domain=settings.ams_aad_tenant_domain,
            client_id=settings.ams_client_id,
            client_secret=settings.ams_client_secret,
            resource=settings.ams_aad_resource,
        )
        return cls(
            api_endpoint=settings.ams_rest_api_endpoint,
            token_provider=token_provider,
            api_version=settings.ams_api_version,
        )

    def _get_client(self) -> httpx.Client:
        """Lazy-init HTTP client."""
        if self._client is None:
            self._client = httpx.Client(timeout=30.0)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    # --- Transport ---

    def _headers(self) -> dict:
        return {
            'Authorization': f'Bearer {self._token_provider.get_token()}',
            'x-ms-version': self.api_version,
            'DataServiceVersion': '3.0',
            'MaxDataServiceVersion': '3.0',
            'Accept': 'application/json',
            'Content-Type': 'application/json',
        }

    def _request(
        self,
        method: str,
        path: str,
        payload: dict | None = None,
        params: dict | None = None,
        allow_not_found: bool = False,
    ) -> dict | None:
        """Make an authenticated request. Returns None for empty bodies."""
        url = f"{self.api_endpoint}{path}"
        try:
            response = self._get_client().request(
                method,
                url,
                headers=self._headers(),
                content=json.dumps(payload) if payload is not None else None,
                params=params,
            )
        except httpx.HTTPError as e:
            print(f"PLATFORM: {method} {path} failed: {type(e).__name__}: {e}", flush=True)
            raise PlatformError(None, "TransportError", str(e)) from e

        if response.status_code == 404 and allow_not_found:
            return None

        if response.status_code >= 400:
            code, message = self._parse_error(response)
            print(f"PLATFORM: {method} {path} -> {response.status_code} {code}: {message}", flush=True)
            raise PlatformError(response.status_code, code, message)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    @staticmethod
    def _parse_error(response: httpx.Response) -> tuple[str, str]:
        try:
            error = response.json().get('odata.error', {})
        except ValueError:
            return 'Unknown', response.text or f'HTTP {response.status_code}'
        message = error.get('message', {})
        if isinstance(message, dict):
            message = message.get('value', '')
        return error.get('code', 'Unknown'), message or f'HTTP {response.status_code}'

    def _entity_path(self, collection: str, entity_id: str) -> str:
        return f"{collection}('{quote(entity_id, safe='')}')"

    def _entity_uri(self, collection: str, entity_id: str) -> str:
        return f"{self.api_endpoint}{self._entity_path(collection, entity_id)}"

    def _link(self, collection: str, entity_id: str, navigation: str, target_collection: str, target_id: str):
        self._request(
            'POST',
            f"{self._entity_path(collection, entity_id)}/$links/{navigation}",
            {'uri': self._entity_uri(target_collection, target_id)},
        )

    def _list(self, path: str) -> list[dict]:
        result = self._request('GET', path)
        return result.get('value', []) if result else []

    # --- Unmarshalling ---

    @staticmethod
    def _content_key(item: dict) -> ContentKey:
        return ContentKey(
            id=item['Id'],
            content_key_type=_wire_enum(ContentKeyType, item.get('ContentKeyType', 0)),
            name=item.get('Name') or '',
            authorization_policy_id=item.get('AuthorizationPolicyId') or None,
        )

    @staticmethod
    def _delivery_policy(item: dict) -> DeliveryPolicy:
        configuration = {}
        raw = item.get('AssetDeliveryConfiguration')
        if raw:
            for entry in json.loads(raw):
                try:
                    key = AssetDeliveryPolicyConfigurationKey(entry['Key'])
                except ValueError:
                    continue
                configuration[key] = entry['Value']
        return DeliveryPolicy(
            id=item['Id'],
            name=item.get('Name') or '',
            protocol=AssetDeliveryProtocol(item['AssetDeliveryProtocol']),
            policy_type=_wire_enum(AssetDeliveryPolicyType, item['AssetDeliveryPolicyType']),
            configuration=configuration,
        )

    @staticmethod
    def _locator(item: dict) -> Locator:
        return Locator(
            id=item['Id'],
            type=LocatorType(item['Type']),
            expiration=_parse_datetime(item['ExpirationDateTime']),
            content_access_component=item.get('ContentAccessComponent') or '',
            path=item.get('Path'),
        )

    @staticmethod
    def _streaming_endpoint(item: dict) -> StreamingEndpoint:
        return StreamingEndpoint(
            id=item.get('Id'),
            name=item['Name'],
            host_name=item['HostName'],
            state=item.get('State', ''),
            cdn_enabled=bool(item.get('CdnEnabled')),
            scale_units=item.get('ScaleUnits') or 0,
            version=item.get('StreamingEndpointVersion') or '',
        )

    # --- Reads ---

    def get_asset(self, asset_id: str) -> Asset | None:
        item = self._request('GET', self._entity_path('Assets', asset_id), allow_not_found=True)
        if item is None:
            return None
        return Asset(id=item['Id'], name=item.get('Name') or '')

    def list_content_keys(self, asset_id: str) -> list[ContentKey]:
        return [self._content_key(i) for i in self._list(f"{self._entity_path('Assets', asset_id)}/ContentKeys")]

    def list_delivery_policies(self, asset_id: str) -> list[DeliveryPolicy]:
        return [self._delivery_policy(i) for i in self._list(f"{self._entity_path('Assets', asset_id)}/DeliveryPolicies")]

    def list_locators(self, asset_id: str) -> list[Locator]:
        return [self._locator(i) for i in self._list(f"{self._entity_path('Assets', asset_id)}/Locators")]

    def list_files(self, asset_id: str) -> list[AssetFile]:
        return [
            AssetFile(name=i['Name'], is_primary=bool(i.get('IsPrimary')))
            for i in self._list(f"{self._entity_path('Assets', asset_id)}/Files")
        ]

    def list_streaming_endpoints(self) -> list[StreamingEndpoint]:
        return [self._streaming_endpoint(i) for i in self._list('StreamingEndpoints')]

    # --- Content keys ---

    def _protection_key(self, key_type: ContentKeyType) -> tuple[str, str]:
        """Get (protection key id, base64 certificate) used to wrap content keys."""
        key_id = self._request('GET', 'GetProtectionKeyId', params={'contentKeyType': int(key_type)})['value']
        certificate = self._request('GET', 'GetProtectionKey', params={'ProtectionKeyId': f"'{key_id}'"})['value']
        return key_id, certificate

    def create_content_key(
        self,
        key_identifier: uuid.UUID,
        key_value: bytes,
        key_type: ContentKeyType,
        name: str,
    ) -> ContentKey:
        protection_key_id, certificate = self._protection_key(key_type)
        item = self._request('POST', 'ContentKeys', {
            'Id': content_key_id(key_identifier),
            'Name': name,
            'ContentKeyType': int(key_type),
            'EncryptedContentKey': encrypt_content_key(key_value, certificate),
            'ProtectionKeyId': protection_key_id,
            'ProtectionKeyType': PROTECTION_KEY_TYPE_X509,
            'Checksum': calculate_key_checksum(key_value, key_identifier),
        })
        return self._content_key(item)

    def link_content_key(self, asset_id: str, key_id: str) -> None:
        self._link('Assets', asset_id, 'ContentKeys', 'ContentKeys', key_id)

    def delete_content_key(self, key_id: str) -> None:
        self._request('DELETE', self._entity_path('ContentKeys', key_id))

    def update_content_key_authorization_policy(self, key_id: str, policy_id: str) -> None:
        self._request('MERGE', self._entity_path('ContentKeys', key_id), {'AuthorizationPolicyId': policy_id})

    def get_key_delivery_url(self, key_id: str, key_delivery_type: KeyDeliveryType) -> str:
        result = self._request(
            'POST',
            f"{self._entity_path('ContentKeys', key_id)}/GetKeyDeliveryUrl",
            {'keyDeliveryType': int(key_delivery_type)},
        )
        if not result or not result.get('value'):
            raise PlatformError(None, 'InvalidResponse', f"No key delivery URL returned for {key_id}")
        return result['value']

    # --- Authorization policies ---

    def create_authorization_policy(self, name: str) -> AuthorizationPolicy:
        item = self._request('POST', 'ContentKeyAuthorizationPolicies', {'Name': name})
        return AuthorizationPolicy(id=item['Id'], name=item.get('Name') or name)

    def delete_authorization_policy(self, policy_id: str) -> None:
        self._request('DELETE', self._entity_path('ContentKeyAuthorizationPolicies', policy_id))

    def create_authorization_policy_option(
        self,
        name: str,
        key_delivery_type: KeyDeliveryType,
        key_delivery_configuration: str,
        restrictions: list[KeyRestriction],
    ) -> AuthorizationPolicyOption:
        item = self._request('POST', 'ContentKeyAuthorizationPolicyOptions', {
            'Name': name,
            'KeyDeliveryType': int(key_delivery_type),
            'KeyDeliveryConfiguration': key_delivery_configuration,
            'Restrictions': [
                {
                    'Name': r.name,
                    'KeyRestrictionType': int(r.restriction_type),
                    'Requirements': r.requirements,
                }
                for r in restrictions
            ],
        })
        return AuthorizationPolicyOption(
            id=item['Id'],
            name=name,
            key_delivery_type=key_delivery_type,
            key_delivery_configuration=key_delivery_configuration,
            restrictions=list(restrictions),
        )

    def delete_authorization_policy_option(self, option_id: str) -> None:
        self._request('DELETE', self._entity_path('ContentKeyAuthorizationPolicyOptions', option_id))

    def link_authorization_policy_option(self, policy_id: str, option_id: str) -> None:
        self._link(
            'ContentKeyAuthorizationPolicies', policy_id, 'Options',
            'ContentKeyAuthorizationPolicyOptions', option_id,
        )

    # --- Delivery policies ---

    def create_delivery_policy(
        self,
        name: str,
        protocol: AssetDeliveryProtocol,
        policy_type: AssetDeliveryPolicyType,
        configuration: dict[AssetDeliveryPolicyConfigurationKey, str],
    ) -> DeliveryPolicy:
        # The configuration travels as a JSON string of Key/Value pairs
        serialized = json.dumps([{'Key': int(k), 'Value': v} for k, v in configuration.items()])
        item = self._request('POST', 'AssetDeliveryPolicies', {
            'Name': name,
            'AssetDeliveryProtocol': int(protocol),
            'AssetDeliveryPolicyType': int(policy_type),
            'AssetDeliveryConfiguration': serialized,
        })
        return self._delivery_policy(item)

    def link_delivery_policy(self, asset_id: str, policy_id: str) -> None:
        self._link('Assets', asset_id, 'DeliveryPolicies', 'AssetDeliveryPolicies', policy_id)

    def delete_delivery_policy(self, policy_id: str) -> None:
        self._request('DELETE', self._entity_path('AssetDeliveryPolicies', policy_id))

    # --- Publishing ---

    def create_access_policy(
        self,
        name: str,
        duration_minutes: float,
        permissions: AccessPermissions,
    ) -> AccessPolicy:
        item = self._request('POST', 'AccessPolicies', {
            'Name': name,
            'DurationInMinutes': duration_minutes,
            'Permissions': int(permissions),
        })
        return AccessPolicy(
            id=item['Id'],
            name=item.get('Name') or name,
            duration_minutes=item.get('DurationInMinutes', duration_minutes),
            permissions=permissions,
        )

    def create_locator(
        self,
        asset_id: str,
        access_policy_id: str,
        locator_type: LocatorType,
        start_time: datetime,
    ) -> Locator:
        item = self._request('POST', 'Locators', {
            'AccessPolicyId': access_policy_id,
            'AssetId': asset_id,
            'StartTime': _format_datetime(start_time),
            'Type': int(locator_type),
        })
        return self._locator(item)
