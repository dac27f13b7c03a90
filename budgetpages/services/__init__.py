"""Services package: document storage and outbound mail."""
