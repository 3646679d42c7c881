def migrate(deployer, artifacts):
    iterable_mapping = artifacts.require("IterableMapping")
    green_world = artifacts.require("GreenWorld")

    deployer.deploy(iterable_mapping)
    deployer.link(iterable_mapping, green_world)
    deployer.deploy(green_world)
