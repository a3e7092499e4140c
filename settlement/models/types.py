"""
Standard type definitions for database models.

Money is stored as integer minor currency units (cents), never floating
point.
"""

from sqlalchemy import BigInteger, DateTime, String

# Amounts in cents
# Range: up to 9,223,372,036,854,775,807
CentsType = BigInteger

# Timezone-aware timestamps (UTC)
TimestampType = DateTime(timezone=True)

# Opaque identifiers (uuid4 strings)
IdentifierType = String(36)
