"""Object-oriented facade over an ldap3 connection to an OpenLDAP directory."""

import logging
import ssl
from typing import Optional, List, Dict, Any, Callable, Union

import ldap3
from ldap3 import (
    Server, Connection, ALL, NONE, SUBTREE, LEVEL, ALL_ATTRIBUTES, NO_ATTRIBUTES,
    MODIFY_REPLACE, SIMPLE, ANONYMOUS,
)
from ldap3.core.exceptions import LDAPException
from ldap3.core.results import RESULT_SUCCESS
from ldap3.utils.ciDict import CaseInsensitiveDict
from ldap3.utils.conv import escape_filter_chars
from ldap3.utils.dn import escape_rdn

from ..config.loader import load_config, validate_config
from ..config.models import LDAPConfig, SecurityConfig
from .logging import setup_logging, log_ldap_operation

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = 3
DEFAULT_NEXT_UID = 1000
PAGED_RESULTS_OID = '1.2.840.113556.1.4.319'

Entry = Dict[str, Any]


class OpenLDAP:
    """
    Facade over a single bound LDAP connection.

    The connection is created and bound with the administrative credentials
    on construction and kept until close() is called. Every operation is a
    thin wrapper around one ldap3 call. Failures are logged and reported as
    False (or None for searches) instead of being raised.
    """

    def __init__(self,
                 ldap_config: LDAPConfig,
                 security_config: Optional[SecurityConfig] = None):
        """
        Connect to the directory and bind as the administrator.

        Args:
            ldap_config: Directory connection and layout configuration
            security_config: TLS configuration (defaults to plain LDAP)
        """
        self.ldap_config = ldap_config
        self.security_config = security_config or SecurityConfig()

        # Connect and bind as the administrator
        self._connection: Optional[Connection] = self.connect(ldap_config.host, ldap_config.port)
        self.bound = self.bind(self._connection, ldap_config.admin_dn, ldap_config.admin_password)

        if not self.bound:
            logger.warning(f"Administrative bind to {ldap_config.host} failed")

    @classmethod
    def from_config(cls, config_path: Optional[str] = None) -> "OpenLDAP":
        """
        Build a facade from a JSON configuration file.

        Args:
            config_path: Path to configuration file. If None, uses the
                         OPENLDAP_CONFIG environment variable.

        Returns:
            Connected facade instance
        """
        config = load_config(config_path)
        validate_config(config)
        setup_logging(config.logging)
        return cls(config.ldap, config.security)

    @property
    def connection(self) -> Connection:
        """The administrative connection handle."""
        if self._connection is None:
            raise LDAPException("Connection is closed")
        return self._connection

    def connect(self, host: str, port: int, get_info: str = ALL) -> Connection:
        """
        Create a connection handle for the given server.

        The socket is opened lazily by the first bind, which is also the only
        reliable way to check that the server is reachable.

        Args:
            host: Server host name or URL
            port: Server port
            get_info: Server information read after binding (ALL, SCHEMA, DSA, NONE)

        Returns:
            Connection: Unbound LDAP connection
        """
        use_ssl = self.security_config.use_ssl or host.lower().startswith('ldaps://')

        # Setup TLS configuration
        tls_config = None
        if use_ssl:
            tls_config = ldap3.Tls(
                validate=ssl.CERT_REQUIRED if self.security_config.validate_certificate else ssl.CERT_NONE,
                ca_certs_file=self.security_config.ca_cert_file
            )

        # Create server; the socket opens on first bind
        server = Server(
            host,
            port=port,
            use_ssl=use_ssl,
            tls=tls_config,
            get_info=get_info,
            connect_timeout=self.ldap_config.connect_timeout
        )

        connection = Connection(
            server,
            version=PROTOCOL_VERSION,
            receive_timeout=self.ldap_config.receive_timeout,
            raise_exceptions=False
        )

        logger.debug(f"Created LDAP connection handle for {host}:{port}")
        return connection

    def bind(self, connection: Connection, rdn: Optional[str], password: Optional[str]) -> bool:
        """
        Bind a connection with the given credentials.

        Args:
            connection: Connection to bind
            rdn: Bind DN; an empty value performs an anonymous bind
            password: Bind password

        Returns:
            True if the bind succeeded
        """
        try:
            if connection.rebind(user=rdn or None,
                                 password=password,
                                 authentication=SIMPLE if rdn else ANONYMOUS):
                logger.debug(f"Bound as {rdn or 'anonymous'}")
                return True

            logger.warning(f"Bind failed for {rdn or 'anonymous'}: {connection.result}")
            return False

        except LDAPException as e:
            logger.warning(f"Error binding to LDAP as {rdn or 'anonymous'}: {e}")
            return False

    def build_user_dn(self, username: str) -> str:
        """
        Build the DN a user binds with from the login attribute and the
        user container.

        Args:
            username: Login name

        Returns:
            User DN, e.g. ``uid=alice,ou=people,dc=example,dc=com``
        """
        login_attribute = self.ldap_config.login_attribute
        base_userdn = self.ldap_config.base_userdn

        if login_attribute:
            rdn = f"{login_attribute}={escape_rdn(username)}"
        else:
            rdn = username

        if base_userdn:
            return f"{rdn},{base_userdn}"
        return rdn

    def authenticate(self, username: str, password: str) -> bool:
        """
        Check a user's credentials.

        The bind happens on a separate connection so that the administrative
        session is left untouched.

        Args:
            username: Login name
            password: Password

        Returns:
            True if the user could bind
        """
        if not username or not password:
            logger.error("Error binding to LDAP: username or password empty")
            return False

        user_dn = self.build_user_dn(username)

        # Only the bind result matters, skip reading schema and root DSE
        connection = self.connect(self.ldap_config.host, self.ldap_config.port, get_info=NONE)

        try:
            authenticated = self.bind(connection, user_dn, password)
            outcome = connection.result
        finally:
            self._unbind(connection)

        log_ldap_operation("authenticate", user_dn, authenticated, outcome)
        return authenticated

    def search(self,
               search_dn: str,
               search_filter: str,
               attributes: Optional[Union[List[str], str]] = None,
               search_scope: str = SUBTREE) -> Optional[List[Entry]]:
        """
        Search the directory.

        Args:
            search_dn: Base DN for search
            search_filter: LDAP filter; enclosing parentheses are optional
            attributes: Attributes to retrieve (all user attributes if empty)
            search_scope: Search scope (SUBTREE, LEVEL, BASE)

        Returns:
            List of entries as ``{'dn': ..., 'attributes': {...}}`` with
            list values and case-insensitive attribute names, or None if the
            search failed
        """
        search_filter = search_filter.strip()
        if not search_filter.startswith('('):
            search_filter = f"({search_filter})"

        try:
            connection = self.connection
            logger.debug(f"Searching: base={search_dn}, filter={search_filter}")

            # Perform paged search, following the cookie until the last page
            entries = []
            cookie = None

            while True:
                connection.search(
                    search_base=search_dn,
                    search_filter=search_filter,
                    search_scope=search_scope,
                    attributes=attributes or ALL_ATTRIBUTES,
                    paged_size=self.ldap_config.page_size,
                    paged_cookie=cookie
                )

                if connection.result.get('result') != RESULT_SUCCESS:
                    logger.error(f"Search failed: {connection.result}")
                    return None

                for entry in connection.entries:
                    entries.append({
                        'dn': entry.entry_dn,
                        'attributes': CaseInsensitiveDict(entry.entry_attributes_as_dict)
                    })

                # An empty cookie marks the last page
                cookie = connection.result.get('controls', {}).get(PAGED_RESULTS_OID, {}).get('value', {}).get('cookie')
                if not cookie:
                    break

            logger.debug(f"Search returned {len(entries)} entries")
            return entries

        except LDAPException as e:
            logger.error(f"Search error: {e}")
            return None

    def count_data(self, result: Optional[List[Entry]]) -> int:
        """Return the number of entries in a search result."""
        if not result:
            return 0
        return len(result)

    def add_record(self, dn: str, record: Dict[str, Any]) -> bool:
        """
        Add an entry.

        Args:
            dn: Distinguished name of new entry
            record: Entry attributes, including objectClass

        Returns:
            True if successful
        """
        logger.debug(f"Adding entry: {dn}")
        return self._audited("add", dn, lambda connection: connection.add(dn, attributes=record))

    def modify_record(self, dn: str, record: Dict[str, Any]) -> bool:
        """
        Replace attribute values of an entry.

        Args:
            dn: Distinguished name of entry to modify
            record: New values per attribute; an empty list removes the attribute

        Returns:
            True if successful
        """
        changes = {}
        for attr_name, value in record.items():
            values = list(value) if isinstance(value, (list, tuple)) else [value]
            changes[attr_name] = [(MODIFY_REPLACE, values)]

        logger.debug(f"Modifying entry: {dn}")
        return self._audited("modify", dn, lambda connection: connection.modify(dn, changes))

    def delete_record(self, dn: str, recursive: bool = False) -> bool:
        """
        Delete an entry, optionally with everything below it.

        Args:
            dn: Distinguished name of entry to delete
            recursive: Delete child entries first, depth first

        Returns:
            True if successful; a recursive delete stops at the first failure
        """
        if recursive:
            # Children first; an entry with children cannot be deleted
            children = self.search(dn, "(objectClass=*)", attributes=NO_ATTRIBUTES, search_scope=LEVEL) or []
            for child in children:
                # ldap3's mock strategy returns the base entry in one-level results
                if child['dn'].lower() == dn.lower():
                    continue
                if not self.delete_record(child['dn'], recursive=True):
                    return False

        logger.debug(f"Deleting entry: {dn}")
        return self._audited("delete", dn, lambda connection: connection.delete(dn))

    def _audited(self, operation: str, dn: str, request: Callable[[Connection], bool]) -> bool:
        """Run a write request on the admin connection and audit its outcome."""
        try:
            connection = self.connection
            success = bool(request(connection))
            outcome = connection.result
        except LDAPException as e:
            success, outcome = False, e

        log_ldap_operation(operation, dn, success, outcome)
        return success

    def close(self) -> bool:
        """Unbind the administrative connection."""
        if self._connection is not None:
            self._unbind(self._connection)
            self._connection = None
            logger.info("Disconnected from LDAP server")
        return True

    def _unbind(self, connection: Connection) -> None:
        """Unbind a connection, logging instead of raising on failure."""
        try:
            connection.unbind()
        except LDAPException as e:
            logger.warning(f"Error during disconnect: {e}")

    def get_user_data(self, identifier: str, attributes: Optional[List[str]] = None) -> Optional[List[Entry]]:
        """
        Look up a user by login name.

        Args:
            identifier: Value of the login attribute
            attributes: Attributes to retrieve (all user attributes if empty)

        Returns:
            Matching entries, or None if the search failed or found nothing
        """
        escaped = escape_filter_chars(identifier)
        login_attribute = self.ldap_config.login_attribute

        if login_attribute:
            search_filter = f"(&({login_attribute}={escaped}))"
        else:
            search_filter = f"(&({escaped}))"

        if not isinstance(attributes, list):
            attributes = []

        user_info = self.search(self.ldap_config.base_userdn, search_filter, attributes)
        return user_info or None

    def get_group_list(self) -> List[str]:
        """Return the names (cn) of all groups in the group container."""
        entries = self.search(self.ldap_config.groupdn, "(cn=*)", ['cn', 'gidNumber']) or []

        group_list = []
        for entry in entries:
            cn = entry['attributes'].get('cn')
            if cn and cn[0]:
                group_list.append(cn[0])

        return group_list

    def get_group_map(self) -> Dict[str, str]:
        """Return a mapping of gidNumber to group name."""
        entries = self.search(self.ldap_config.groupdn, "(cn=*)", ['cn', 'gidNumber']) or []

        group_map = {}
        for entry in entries:
            cn = entry['attributes'].get('cn')
            gid_number = entry['attributes'].get('gidNumber')
            if cn and gid_number:
                group_map[str(gid_number[0])] = cn[0]

        return group_map

    def which_group(self, identifier: str) -> Optional[str]:
        """
        Return the name of a user's primary group.

        Args:
            identifier: Value of the login attribute

        Returns:
            Group name, or None if the user or group cannot be found
        """
        user_info = self.get_user_data(identifier, ['gidNumber'])
        if not user_info:
            return None

        gid_number = user_info[0]['attributes'].get('gidNumber')
        if not gid_number:
            logger.debug(f"User {identifier} has no gidNumber")
            return None

        return self.get_group_map().get(str(gid_number[0]))

    def get_next_uid(self) -> int:
        """Return the next free uidNumber below the base DN."""
        entries = self.search(self.ldap_config.base_dn, 'uidNumber=*', ['uidNumber'])

        if not entries:
            return DEFAULT_NEXT_UID

        uid_numbers = []
        for entry in entries:
            for value in entry['attributes'].get('uidNumber', []):
                try:
                    uid_numbers.append(int(value))
                except (TypeError, ValueError):
                    logger.warning(f"Ignoring non-numeric uidNumber {value!r} on {entry['dn']}")

        if not uid_numbers:
            return DEFAULT_NEXT_UID

        return max(uid_numbers) + 1

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
