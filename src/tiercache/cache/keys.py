"""Cache key schema.

Key format: {namespace}:{qualifier}:{id}

Where:
- namespace: data category ("threat", "user", "region")
- qualifier: record kind within the category ("analysis", "session", "threats")
- id: entity identifier (indicator, user id, region name)

Pattern queries are plain substrings, so a namespace prefix such as
"region:threats:" selects every key in that category.
"""

from __future__ import annotations


class CacheKeys:
    """Cache key generator following consistent naming convention."""

    THREAT_ANALYSIS = "threat:analysis:"
    USER_SESSION = "user:session:"
    REGIONAL_THREATS = "region:threats:"

    NAMESPACES = (THREAT_ANALYSIS, USER_SESSION, REGIONAL_THREATS)

    @classmethod
    def threat_analysis(cls, entity: str) -> str:
        """Key for a threat-analysis result."""
        return f"{cls.THREAT_ANALYSIS}{entity}"

    @classmethod
    def user_session(cls, user_id: str | int) -> str:
        """Key for a user session."""
        return f"{cls.USER_SESSION}{user_id}"

    @classmethod
    def regional_threats(cls, region: str) -> str:
        """Key for a regional threat aggregate."""
        return f"{cls.REGIONAL_THREATS}{region}"

    @classmethod
    def parse_key(cls, key: str) -> dict[str, str] | None:
        """Split a key into its namespace and entity id.

        Returns None if the key is not in a known namespace.
        """
        for namespace in cls.NAMESPACES:
            if key.startswith(namespace) and len(key) > len(namespace):
                return {"namespace": namespace, "id": key[len(namespace) :]}
        return None
