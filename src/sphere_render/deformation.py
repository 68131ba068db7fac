# deformation.py
import taichi as ti


@ti.data_oriented
class GaussianDisplacement:
    """Pushes points along -y by a Gaussian bump centred at the origin.

    Applied to sample points before the density lookup, so the rendered
    object appears displaced by the opposite amount.
    """

    def __init__(self, amplitude=0.05, sigma=0.2):
        self.amplitude = float(amplitude)
        self.sigma = float(sigma)

    @ti.func
    def apply(self, p):
        r2 = p.norm_sqr()
        dy = self.amplitude * ti.exp(-r2 / (2.0 * self.sigma * self.sigma))
        return ti.Vector([p[0], p[1] - dy, p[2]], dt=ti.f64)

    def to_yaml(self):
        return {"type": "gaussian_displacement", "amplitude": self.amplitude, "sigma": self.sigma}

    @classmethod
    def from_yaml(cls, data):
        return cls(amplitude=data.get("amplitude", 0.05), sigma=data.get("sigma", 0.2))
