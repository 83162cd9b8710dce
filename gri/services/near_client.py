"""NEAR JSON-RPC client wrapper for Sputnik DAO contracts"""
import base64
import json
from typing import Optional, List, Dict, Any, Union
from dataclasses import dataclass, field
import httpx
import structlog

logger = structlog.get_logger()


class NearRPCError(Exception):
    """A view call failed at the transport, RPC, or decoding level"""

    def __init__(self, message: str, method: str = "", contract_id: str = ""):
        super().__init__(message)
        self.method = method
        self.contract_id = contract_id


@dataclass
class VotePolicy:
    """Quorum and threshold rule"""
    weight_kind: str = "RoleWeight"
    quorum: str = "0"
    threshold: Union[List[int], str] = "Majority"

    @classmethod
    def from_raw(cls, raw: Any) -> "VotePolicy":
        if not isinstance(raw, dict):
            return cls()
        return cls(
            weight_kind=raw.get("weight_kind", "RoleWeight"),
            quorum=str(raw.get("quorum", "0")),
            threshold=raw.get("threshold", "Majority"),
        )


@dataclass
class DAORole:
    """A role is either a capability class ("Everyone", "Member", ...) or a Group"""
    name: str
    kind: Union[str, Dict[str, Any]]
    permissions: List[str] = field(default_factory=list)
    vote_policy: Dict[str, VotePolicy] = field(default_factory=dict)

    @property
    def group_members(self) -> List[str]:
        if isinstance(self.kind, dict) and isinstance(self.kind.get("Group"), list):
            return self.kind["Group"]
        return []

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "DAORole":
        raw_policies = raw.get("vote_policy") or {}
        return cls(
            name=raw.get("name", ""),
            kind=raw.get("kind", "Everyone"),
            permissions=list(raw.get("permissions") or []),
            vote_policy={k: VotePolicy.from_raw(v) for k, v in raw_policies.items()},
        )


@dataclass
class DAOPolicy:
    """Snapshot of a DAO's governance rules"""
    roles: List[DAORole] = field(default_factory=list)
    default_vote_policy: VotePolicy = field(default_factory=VotePolicy)
    proposal_bond: str = "0"
    proposal_period: str = "0"  # nanoseconds
    bounty_bond: str = "0"
    bounty_forgiveness_period: str = "0"  # nanoseconds

    @property
    def member_count(self) -> int:
        """Sum of the sizes of all Group roles"""
        return sum(len(role.group_members) for role in self.roles)

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "DAOPolicy":
        return cls(
            roles=[DAORole.from_raw(r) for r in raw.get("roles") or [] if isinstance(r, dict)],
            default_vote_policy=VotePolicy.from_raw(raw.get("default_vote_policy")),
            proposal_bond=str(raw.get("proposal_bond", "0")),
            proposal_period=str(raw.get("proposal_period", "0")),
            bounty_bond=str(raw.get("bounty_bond", "0")),
            bounty_forgiveness_period=str(raw.get("bounty_forgiveness_period", "0")),
        )


class NearClient:
    """
    Read-only NEAR RPC client for Sputnik DAO view methods.

    Every public method degrades to a safe default (empty list, zero, None)
    when the remote call fails, so callers never see transport errors.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 15.0,
        network_id: str = "mainnet",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.network_id = network_id
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._request_id = 0

    async def connect(self) -> None:
        """Open the HTTP connection pool"""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
            logger.info("Connected to NEAR RPC", url=self.rpc_url, network=self.network_id)

    async def disconnect(self) -> None:
        """Close the HTTP connection pool"""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Disconnected from NEAR RPC")

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, raise if not connected"""
        if self._client is None:
            raise RuntimeError("NEAR client not connected. Call connect() first.")
        return self._client

    async def view_function(
        self,
        contract_id: str,
        method_name: str,
        args: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Call a contract view method and decode its JSON result.

        Raises NearRPCError on any failure.
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": f"gri-{self._request_id}",
            "method": "query",
            "params": {
                "request_type": "call_function",
                "finality": "final",
                "account_id": contract_id,
                "method_name": method_name,
                "args_base64": base64.b64encode(json.dumps(args or {}).encode()).decode(),
            },
        }

        try:
            response = await self.client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise NearRPCError(str(e), method_name, contract_id) from e

        if not isinstance(body, dict):
            raise NearRPCError("Malformed RPC response", method_name, contract_id)
        if body.get("error"):
            raise NearRPCError(json.dumps(body["error"]), method_name, contract_id)

        result = body.get("result")
        if not isinstance(result, dict):
            raise NearRPCError("Missing RPC result", method_name, contract_id)
        # Contract panics come back as a successful RPC response with an "error" field
        if result.get("error"):
            raise NearRPCError(str(result["error"]), method_name, contract_id)

        raw_bytes = result.get("result")
        if not isinstance(raw_bytes, list):
            raise NearRPCError("Missing result bytes", method_name, contract_id)

        try:
            return json.loads(bytes(raw_bytes).decode("utf-8"))
        except (ValueError, UnicodeDecodeError) as e:
            raise NearRPCError(f"Undecodable result: {e}", method_name, contract_id) from e

    async def get_proposals(
        self,
        contract_id: str,
        from_index: int = 0,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """Get a page of raw proposals"""
        try:
            result = await self.view_function(
                contract_id,
                "get_proposals",
                {"from_index": from_index, "limit": limit},
            )
        except NearRPCError as e:
            logger.warning(
                "Failed to fetch proposals",
                dao_id=contract_id,
                from_index=from_index,
                limit=limit,
                error=str(e),
            )
            return []

        if not isinstance(result, list):
            logger.warning("Unexpected proposals payload", dao_id=contract_id)
            return []
        return [p for p in result if isinstance(p, dict)]

    async def get_proposal(self, contract_id: str, proposal_id: int) -> Optional[Dict[str, Any]]:
        """Get a single raw proposal"""
        try:
            result = await self.view_function(contract_id, "get_proposal", {"id": proposal_id})
        except NearRPCError as e:
            logger.warning(
                "Failed to fetch proposal",
                dao_id=contract_id,
                proposal_id=proposal_id,
                error=str(e),
            )
            return None
        return result if isinstance(result, dict) else None

    async def get_proposal_count(self, contract_id: str) -> int:
        """Get the number of proposals (last proposal id + 1)"""
        try:
            result = await self.view_function(contract_id, "get_last_proposal_id")
        except NearRPCError as e:
            logger.warning("Failed to fetch proposal count", dao_id=contract_id, error=str(e))
            return 0

        if isinstance(result, bool) or not isinstance(result, int) or result < 0:
            logger.warning("Unexpected proposal count payload", dao_id=contract_id, value=result)
            return 0
        return result

    async def get_policy(self, contract_id: str) -> Optional[DAOPolicy]:
        """Get DAO policy (roles, vote policy, bonds)"""
        try:
            result = await self.view_function(contract_id, "get_policy")
        except NearRPCError as e:
            logger.warning("Failed to fetch policy", dao_id=contract_id, error=str(e))
            return None

        if not isinstance(result, dict):
            return None
        return DAOPolicy.from_raw(result)

    async def is_valid_dao(self, contract_id: str) -> bool:
        """A contract is a Sputnik DAO if it answers get_policy"""
        return await self.get_policy(contract_id) is not None

    async def get_dao_list(
        self,
        factory_id: str = "sputnik-dao.near",
        from_index: int = 0,
        limit: int = 100,
    ) -> List[str]:
        """Get DAO names registered in a factory contract"""
        try:
            result = await self.view_function(
                factory_id,
                "get_dao_list",
                {"from_index": from_index, "limit": limit},
            )
        except NearRPCError as e:
            logger.warning("Failed to fetch DAO list", factory_id=factory_id, error=str(e))
            return []

        if not isinstance(result, list):
            return []
        return [str(name) for name in result]
