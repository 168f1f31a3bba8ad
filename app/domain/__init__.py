"""Pure business rules shared by the API and the storefront client."""
