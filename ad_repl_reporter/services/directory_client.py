"""
LDAP access to Active Directory for the replication reports.

``DirectoryClient`` is the only component that talks to domain controllers.
It exposes root DSE lookup, attribute reads by distinguished name, domain
controller enumeration, and the three replication queries (partner metadata,
up-to-dateness vectors, KCC failures). Replication state is read from the
constructed ``msDS-Repl*`` / ``msDS-NCRepl*`` attributes, so no RPC access is
needed.

One connection is opened per host and reused until ``close()``. There is no
retry layer: every LDAP failure is translated into a ``DirectoryServiceError``
and propagated.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional

import structlog
from ldap3 import BASE, KERBEROS, NONE, NTLM, SASL, SUBTREE, Connection, Server
from ldap3.core.exceptions import LDAPBindError, LDAPException, LDAPSocketOpenError

from ad_repl_reporter.config_manager import DirectoryConfig
from ad_repl_reporter.exceptions import (
    DirectoryAuthenticationError,
    DirectoryConnectionError,
    DirectoryObjectNotFoundError,
    DirectoryServiceError,
    DomainNotFoundError,
)
from ad_repl_reporter.models import (
    FailureType,
    PartnerType,
    ReplicationFailureRecord,
    ReplicationPartnerRecord,
    ReplicationVectorRecord,
    RootDSE,
)
from ad_repl_reporter.services.repl_xml import (
    parse_cursor,
    parse_kcc_failure,
    parse_neighbor,
)

logger = structlog.get_logger(__name__)

LDAP_NO_SUCH_OBJECT = 32

# userAccountControl bits marking writable and read-only domain controllers
_DC_FILTER = (
    "(&(objectCategory=computer)"
    "(|(userAccountControl:1.2.840.113556.1.4.803:=8192)"
    "(userAccountControl:1.2.840.113556.1.4.803:=67108864)))"
)

_ROOT_DSE_ATTRIBUTES = [
    "rootDomainNamingContext",
    "defaultNamingContext",
    "configurationNamingContext",
    "forestFunctionality",
    "domainFunctionality",
    "dnsHostName",
    "namingContexts",
]

_FUNCTIONAL_LEVELS = {
    0: "Windows2000",
    1: "Windows2003Interim",
    2: "Windows2003",
    3: "Windows2008",
    4: "Windows2008R2",
    5: "Windows2012",
    6: "Windows2012R2",
    7: "Windows2016",
    10: "Windows2025",
}

_NEIGHBOR_ATTRIBUTES = {
    PartnerType.INBOUND: "msDS-ReplAllInboundNeighbors",
    PartnerType.OUTBOUND: "msDS-ReplAllOutboundNeighbors",
}

_FAILURE_ATTRIBUTES = {
    FailureType.CONNECTION: "msDS-ReplConnectionFailures",
    FailureType.LINK: "msDS-ReplLinkFailures",
}

ConnectionFactory = Callable[[str], Connection]


def functional_level_name(value: Any, suffix: str) -> str:
    """Render a forestFunctionality/domainFunctionality integer as e.g. Windows2016Forest."""
    try:
        level = int(value)
    except (TypeError, ValueError):
        return str(value) if value is not None else ""
    name = _FUNCTIONAL_LEVELS.get(level)
    return f"{name}{suffix}" if name else str(level)


def _values(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _first(value: Any, default: Any = "") -> Any:
    values = _values(value)
    return values[0] if values else default


def _parent_dn(dn: str) -> str:
    return dn.split(",", 1)[1] if "," in dn else ""


class DirectoryClient:
    """
    Thin query layer over ldap3.

    Args:
        config: Directory connection settings
        connection_factory: Optional callable returning a bound connection for
            a host name. Used by tests to substitute mock connections.
    """

    def __init__(
        self,
        config: DirectoryConfig,
        connection_factory: Optional[ConnectionFactory] = None,
    ):
        self.config = config
        self._connection_factory = connection_factory or self._open_connection
        self._connections: Dict[str, Connection] = {}

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    def _open_connection(self, host: str) -> Connection:
        server = Server(
            host,
            port=self.config.port,
            use_ssl=self.config.use_ssl,
            get_info=NONE,
            connect_timeout=self.config.connect_timeout,
        )
        if self.config.auth_method == "kerberos":
            return Connection(
                server,
                authentication=SASL,
                sasl_mechanism=KERBEROS,
                auto_bind=True,
            )
        return Connection(
            server,
            user=self.config.username,
            password=self.config.password,
            authentication=NTLM,
            auto_bind=True,
        )

    def default_host(self) -> str:
        try:
            return self.config.default_host()
        except ValueError as e:
            raise DirectoryConnectionError(str(e), cause=e) from e

    def connection(self, host: Optional[str] = None) -> Connection:
        """Return the cached connection for a host, opening it on first use."""
        host = host or self.default_host()
        if host in self._connections:
            return self._connections[host]

        logger.debug("Connecting to domain controller", host=host)
        try:
            conn = self._connection_factory(host)
        except LDAPSocketOpenError as e:
            raise DirectoryConnectionError(
                f"Cannot reach {host}", host=host, cause=e
            ) from e
        except LDAPBindError as e:
            raise DirectoryAuthenticationError(
                f"Bind to {host} was rejected", host=host, cause=e
            ) from e
        except LDAPException as e:
            raise DirectoryServiceError(
                f"LDAP error while connecting to {host}",
                context={"host": host},
                cause=e,
            ) from e
        self._connections[host] = conn
        return conn

    def close(self) -> None:
        for host, conn in list(self._connections.items()):
            try:
                conn.unbind()
            except LDAPException as e:
                logger.debug("Unbind failed", host=host, error=str(e))
        self._connections.clear()

    def __enter__(self) -> "DirectoryClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Primitive queries
    # ------------------------------------------------------------------

    def _search(
        self,
        host: Optional[str],
        search_base: str,
        search_filter: str,
        attributes: Iterable[str],
        scope: str = BASE,
    ) -> List[Dict[str, Any]]:
        """Run a search and return the entry dicts (``dn`` + ``attributes``)."""
        conn = self.connection(host)
        try:
            conn.search(
                search_base,
                search_filter,
                search_scope=scope,
                attributes=list(attributes),
            )
        except LDAPException as e:
            raise DirectoryServiceError(
                f"Search failed on {search_base or 'root DSE'}",
                context={"host": host or self.default_host()},
                cause=e,
            ) from e

        result = conn.result or {}
        code = result.get("result", 0)
        if code == LDAP_NO_SUCH_OBJECT:
            raise DirectoryObjectNotFoundError(
                "Directory object not found", dn=search_base
            )
        if code:
            raise DirectoryServiceError(
                f"Search failed: {result.get('description', code)}",
                context={"dn": search_base, "result": code},
            )

        return [
            {"dn": entry.get("dn", ""), "attributes": entry.get("attributes", {})}
            for entry in (conn.response or [])
            if entry.get("type", "searchResEntry") == "searchResEntry"
        ]

    def _read_entry(
        self, host: Optional[str], dn: str, attributes: Iterable[str]
    ) -> Dict[str, Any]:
        entries = self._search(host, dn, "(objectClass=*)", attributes)
        if not entries:
            raise DirectoryObjectNotFoundError("Directory object not found", dn=dn)
        return entries[0]["attributes"]

    def get_root_dse(self, host: Optional[str] = None) -> RootDSE:
        """Fetch the root DSE of a domain controller (default host if omitted)."""
        attrs = self._read_entry(host, "", _ROOT_DSE_ATTRIBUTES)
        default_nc = str(_first(attrs.get("defaultNamingContext")))
        return RootDSE(
            root_domain_naming_context=str(
                _first(attrs.get("rootDomainNamingContext")) or default_nc
            ),
            default_naming_context=default_nc,
            configuration_naming_context=str(
                _first(attrs.get("configurationNamingContext"))
            ),
            forest_functionality=functional_level_name(
                _first(attrs.get("forestFunctionality"), None), "Forest"
            ),
            domain_functionality=functional_level_name(
                _first(attrs.get("domainFunctionality"), None), "Domain"
            ),
            dns_host_name=str(_first(attrs.get("dnsHostName"))),
            naming_contexts=tuple(str(v) for v in _values(attrs.get("namingContexts"))),
        )

    def read_attribute(self, dn: str, attribute: str, host: Optional[str] = None) -> Any:
        """
        Read a single attribute of the object at ``dn``.

        Raises:
            DirectoryObjectNotFoundError: If the object or the attribute is absent.
        """
        attrs = self._read_entry(host, dn, [attribute])
        values = _values(attrs.get(attribute))
        if not values:
            raise DirectoryObjectNotFoundError(
                "Attribute not present on directory object", dn=dn, attribute=attribute
            )
        return values[0]

    # ------------------------------------------------------------------
    # Domain controller enumeration
    # ------------------------------------------------------------------

    def get_domain_controllers(self, domain: str) -> List[str]:
        """Host names of every writable and read-only DC of a domain."""
        try:
            root = self.get_root_dse(domain)
        except DirectoryConnectionError as e:
            raise DomainNotFoundError(
                f"Domain {domain} is not reachable", domain=domain, cause=e
            ) from e

        entries = self._search(
            domain,
            root.default_naming_context,
            _DC_FILTER,
            ["dNSHostName"],
            scope=SUBTREE,
        )
        hosts = sorted(
            {
                str(_first(e["attributes"].get("dNSHostName")))
                for e in entries
                if _first(e["attributes"].get("dNSHostName"))
            },
            key=str.lower,
        )
        if not hosts:
            raise DomainNotFoundError(
                f"No domain controllers found for {domain}", domain=domain
            )
        logger.debug("Enumerated domain controllers", domain=domain, count=len(hosts))
        return hosts

    def get_forest_domain_controllers(self, forest: Optional[str] = None) -> List[str]:
        """Host names of every DC in the forest, from the nTDSDSA objects under CN=Sites."""
        root = self.get_root_dse(forest)
        sites_dn = f"CN=Sites,{root.configuration_naming_context}"

        ntds_entries = self._search(
            forest, sites_dn, "(objectClass=nTDSDSA)", ["cn"], scope=SUBTREE
        )
        dc_server_dns = {_parent_dn(e["dn"]).lower() for e in ntds_entries}

        server_entries = self._search(
            forest, sites_dn, "(objectClass=server)", ["dNSHostName"], scope=SUBTREE
        )
        hosts = sorted(
            {
                str(_first(e["attributes"].get("dNSHostName")))
                for e in server_entries
                if e["dn"].lower() in dc_server_dns
                and _first(e["attributes"].get("dNSHostName"))
            },
            key=str.lower,
        )
        logger.debug("Enumerated forest domain controllers", count=len(hosts))
        return hosts

    # ------------------------------------------------------------------
    # Replication queries
    # ------------------------------------------------------------------

    def get_replication_partner_metadata(
        self,
        domain: str,
        partition: str = "*",
        partner_type: PartnerType = PartnerType.BOTH,
    ) -> List[ReplicationPartnerRecord]:
        """
        Partner metadata for every DC of ``domain``.

        Args:
            domain: DNS name of the domain
            partition: Naming context DN to restrict to, or ``*`` for all
            partner_type: Inbound, Outbound or Both
        """
        if partner_type is PartnerType.BOTH:
            directions = [PartnerType.INBOUND, PartnerType.OUTBOUND]
        else:
            directions = [partner_type]

        records: List[ReplicationPartnerRecord] = []
        for host in self.get_domain_controllers(domain):
            attributes = [_NEIGHBOR_ATTRIBUTES[d] for d in directions]
            attrs = self._read_entry(host, "", attributes)
            for direction in directions:
                attribute = _NEIGHBOR_ATTRIBUTES[direction]
                for raw in _values(attrs.get(attribute)):
                    neighbor = parse_neighbor(raw, attribute)
                    if partition != "*" and neighbor.naming_context.lower() != partition.lower():
                        continue
                    records.append(
                        ReplicationPartnerRecord(
                            server=host,
                            partner=neighbor.source_dsa_dn,
                            last_attempt=neighbor.last_sync_attempt,
                            last_result=neighbor.last_sync_result,
                            last_success=neighbor.last_sync_success,
                            partition=neighbor.naming_context,
                            partner_type=direction,
                            consecutive_failures=neighbor.consecutive_failures,
                        )
                    )
        logger.debug("Read partner metadata", domain=domain, records=len(records))
        return records

    def _server_vectors(self, host: str) -> List[ReplicationVectorRecord]:
        records: List[ReplicationVectorRecord] = []
        for partition in self.get_root_dse(host).naming_contexts:
            attrs = self._read_entry(host, partition, ["msDS-NCReplCursors"])
            for raw in _values(attrs.get("msDS-NCReplCursors")):
                cursor = parse_cursor(raw)
                records.append(
                    ReplicationVectorRecord(
                        last_success=cursor.last_sync_success,
                        partition=partition,
                        partner=cursor.source_dsa_dn or cursor.invocation_id,
                        server=host,
                        usn_filter=cursor.usn_filter,
                    )
                )
        return records

    def get_up_to_dateness_vector_table(
        self, scope: str = "Forest", target: Optional[str] = None
    ) -> List[ReplicationVectorRecord]:
        """
        Up-to-dateness vectors for every partition held by the DCs in scope.

        Args:
            scope: ``Forest`` (every DC of the forest) or ``Server``
            target: DC host for ``Server`` scope, forest DNS name for ``Forest``
        """
        if scope == "Server":
            if not target:
                raise ValueError("Server scope requires a target host")
            hosts = [target]
        elif scope == "Forest":
            hosts = self.get_forest_domain_controllers(target)
        else:
            raise ValueError(f"Unsupported scope: {scope}")

        records: List[ReplicationVectorRecord] = []
        for host in hosts:
            records.extend(self._server_vectors(host))
        logger.debug("Read up-to-dateness vectors", scope=scope, records=len(records))
        return records

    def get_replication_failures(
        self, target: str, scope: str = "Server"
    ) -> List[ReplicationFailureRecord]:
        """KCC connection and link failures recorded by the ``target`` DC."""
        if scope != "Server":
            raise ValueError(f"Unsupported scope: {scope}")

        attrs = self._read_entry(target, "", list(_FAILURE_ATTRIBUTES.values()))
        records: List[ReplicationFailureRecord] = []
        for failure_type, attribute in _FAILURE_ATTRIBUTES.items():
            for raw in _values(attrs.get(attribute)):
                failure = parse_kcc_failure(raw, attribute)
                records.append(
                    ReplicationFailureRecord(
                        failure_count=failure.failure_count,
                        failure_type=failure_type,
                        partner=failure.dsa_dn,
                        last_error=failure.last_result,
                    )
                )
        return records
