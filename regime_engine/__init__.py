# Regime Island - HMM regime inference engine
