"""Resource plugins shipped with perch."""
