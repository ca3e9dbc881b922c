# Regime Island - Services Package
