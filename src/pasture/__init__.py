"""Plants, grazers and hunters on a toroidal field."""
