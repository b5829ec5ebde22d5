"""Host services — distribution detection, elevation, provisioning."""
