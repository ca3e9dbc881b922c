# Regime Island - Schemas Package
