"""Web chat front-end for the pricing advisor."""
