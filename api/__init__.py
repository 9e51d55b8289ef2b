"""HTTP interface for Contact Book."""
