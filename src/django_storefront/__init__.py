"""Event storefront: cart pricing, promo codes and schedule editing over a remote API."""
